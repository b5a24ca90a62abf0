# properties/apps.py

"""
PROPERTIES APP CONFIG

Master data the billing engine reads:
- Property (unit / PG) with owner + residents
- TenantProfile (rent terms, move-in date, grace policy)
"""

from django.apps import AppConfig


class PropertiesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "properties"
    verbose_name = "Properties & Tenancies"
