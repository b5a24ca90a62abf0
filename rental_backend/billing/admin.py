# billing/admin.py

from django.contrib import admin

from billing.models import AdHocInvoice, PaymentAttempt, RecurringPeriod


# ======================================================
# PAYMENT ATTEMPTS (inline, read-only)
# ======================================================

ATTEMPT_READONLY = (
    "payer",
    "amount",
    "currency",
    "method",
    "source",
    "state",
    "gateway_order_id",
    "gateway_payment_id",
    "gateway_signature",
    "reference",
    "paid_at",
    "document_ref",
    "created_at",
)


class PaymentAttemptInline(admin.TabularInline):
    model = PaymentAttempt
    extra = 0
    can_delete = False
    fields = ATTEMPT_READONLY
    readonly_fields = ATTEMPT_READONLY

    def has_add_permission(self, request, obj=None):
        return False


# ======================================================
# LEDGER ENTRIES
# ======================================================


@admin.register(AdHocInvoice)
class AdHocInvoiceAdmin(admin.ModelAdmin):
    list_display = ("unit", "month", "year", "amount", "due_date", "status", "created_at")
    list_filter = ("status", "year", "month")
    search_fields = ("unit__name", "unit__building_name", "unit__unit_number")
    readonly_fields = ("status", "created_at", "updated_at")
    inlines = [PaymentAttemptInline]


@admin.register(RecurringPeriod)
class RecurringPeriodAdmin(admin.ModelAdmin):
    list_display = (
        "tenant",
        "period_month",
        "period_year",
        "base_amount",
        "late_fee_amount",
        "total_amount",
        "status",
    )
    list_filter = ("status", "period_year", "is_first_period")
    search_fields = ("tenant__email",)
    readonly_fields = ("late_fee_amount", "total_amount", "created_at", "updated_at")
    inlines = [PaymentAttemptInline]


@admin.register(PaymentAttempt)
class PaymentAttemptAdmin(admin.ModelAdmin):
    list_display = ("id", "payer", "amount", "method", "source", "state", "paid_at", "created_at")
    list_filter = ("state", "source", "method")
    search_fields = ("gateway_order_id", "gateway_payment_id", "reference", "payer__email")
    readonly_fields = ("invoice", "period") + ATTEMPT_READONLY

    def has_add_permission(self, request):
        return False
