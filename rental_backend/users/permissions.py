# users/permissions.py

from rest_framework.permissions import BasePermission

from users.models import User


# ---------------- BASE ROLE PERMISSION ----------------
class HasRole(BasePermission):
    """
    Base permission to check user role safely.
    Superusers always pass.
    """

    allowed_roles = set()

    def has_permission(self, request, view):
        user = request.user
        if not (user and user.is_authenticated):
            return False
        if getattr(user, "is_superuser", False):
            return True
        return user.role in self.allowed_roles


# ---------------- ROLE PERMISSIONS ----------------
class IsAdmin(HasRole):
    allowed_roles = {User.ROLE_ADMIN}


class IsOwnerOrAdmin(HasRole):
    allowed_roles = {User.ROLE_ADMIN, User.ROLE_OWNER}


def is_billing_admin(user) -> bool:
    """Admins may act on any ledger entry (poll, view) regardless of payer."""
    if not (user and user.is_authenticated):
        return False
    return bool(getattr(user, "is_superuser", False)) or user.role == User.ROLE_ADMIN
