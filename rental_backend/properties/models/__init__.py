# properties/models/__init__.py

from .property import Property
from .tenant_profile import TenantProfile

__all__ = [
    "Property",
    "TenantProfile",
]
