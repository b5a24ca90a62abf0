# properties/admin.py

from django.contrib import admin

from properties.models import Property, TenantProfile


@admin.register(Property)
class PropertyAdmin(admin.ModelAdmin):
    list_display = ("__str__", "kind", "owner", "city", "is_active")
    list_filter = ("kind", "is_active")
    search_fields = ("name", "building_name", "unit_number", "owner__email")
    filter_horizontal = ("residents",)


@admin.register(TenantProfile)
class TenantProfileAdmin(admin.ModelAdmin):
    list_display = (
        "tenant",
        "property",
        "monthly_rent",
        "move_in_date",
        "billing_grace_last_day",
        "late_fee_per_day",
        "is_active",
    )
    list_filter = ("is_active",)
    search_fields = ("tenant__email", "property__name", "property__building_name")
