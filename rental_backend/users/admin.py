# users/admin.py

"""
USERS ADMIN REGISTRATION

Registers the custom User model (email identity + billing role).
A tenant's rental terms are edited inline; saving them triggers the
first rent period (see billing.signals).
"""

from __future__ import annotations

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin

from properties.models import TenantProfile
from users.models import User


class TenantProfileInline(admin.StackedInline):
    model = TenantProfile
    fk_name = "tenant"
    can_delete = False
    extra = 0
    autocomplete_fields = ("property",)


@admin.register(User)
class UserAdmin(DjangoUserAdmin):
    ordering = ("email",)
    inlines = [TenantProfileInline]
    list_display = ("email", "role", "display_name", "phone", "is_active")
    list_filter = ("role", "is_staff", "is_active")
    search_fields = ("email", "first_name", "last_name", "phone")

    fieldsets = (
        (None, {"fields": ("email", "password")}),
        ("Profile", {"fields": ("first_name", "last_name", "phone", "role")}),
        (
            "Permissions",
            {
                "fields": (
                    "is_active",
                    "is_staff",
                    "is_superuser",
                    "groups",
                    "user_permissions",
                )
            },
        ),
    )

    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": (
                    "email",
                    "password1",
                    "password2",
                    "role",
                    "is_active",
                ),
            },
        ),
    )
