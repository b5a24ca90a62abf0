# billing/serializers.py

"""
BILLING SERIALIZERS

Transport layer only: request/response shapes for billing endpoints.
Money rules, status derivation and locking live in billing/services.
"""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from billing.models import AdHocInvoice, PaymentAttempt, RecurringPeriod
from billing.services import rent_reports


# ============================================================
# READ MODELS
# ============================================================


class PaymentAttemptSerializer(serializers.ModelSerializer):
    class Meta:
        model = PaymentAttempt
        fields = [
            "id",
            "amount",
            "currency",
            "method",
            "source",
            "state",
            "gateway_order_id",
            "gateway_payment_id",
            "reference",
            "paid_at",
            "document_ref",
            "created_at",
        ]
        read_only_fields = fields


class AdHocInvoiceSerializer(serializers.ModelSerializer):
    """total_paid / outstanding are supplied by the view through context."""

    property = serializers.UUIDField(source="unit_id", read_only=True)
    property_label = serializers.CharField(source="unit.label", read_only=True)
    total_paid = serializers.SerializerMethodField()
    outstanding = serializers.SerializerMethodField()

    class Meta:
        model = AdHocInvoice
        fields = [
            "id",
            "property",
            "property_label",
            "month",
            "year",
            "amount",
            "due_date",
            "status",
            "notes",
            "total_paid",
            "outstanding",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def _paid(self, obj) -> Decimal:
        paid_map = self.context.get("paid_map") or {}
        return paid_map.get(obj.pk, Decimal("0.00"))

    def get_total_paid(self, obj) -> str:
        return str(self._paid(obj))

    def get_outstanding(self, obj) -> str:
        return str(max(obj.amount - self._paid(obj), Decimal("0.00")))


class AdHocInvoiceDetailSerializer(AdHocInvoiceSerializer):
    payments = PaymentAttemptSerializer(source="payment_attempts", many=True, read_only=True)

    class Meta(AdHocInvoiceSerializer.Meta):
        fields = AdHocInvoiceSerializer.Meta.fields + ["payments"]
        read_only_fields = fields


class RecurringPeriodSerializer(serializers.ModelSerializer):
    property = serializers.UUIDField(source="unit_id", read_only=True)
    total_amount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = RecurringPeriod
        fields = [
            "id",
            "property",
            "period_month",
            "period_year",
            "billing_window_start",
            "billing_window_end",
            "due_date",
            "base_amount",
            "late_fee_amount",
            "security_deposit",
            "joining_fee",
            "other_charges",
            "total_amount",
            "is_first_period",
            "is_prorated",
            "status",
        ]
        read_only_fields = fields


class RentHistorySerializer(RecurringPeriodSerializer):
    """Expects periods annotated with paid_at / document_ref (rent_reports.with_settlement)."""

    period_label = serializers.SerializerMethodField()
    property_label = serializers.CharField(source="unit.label", read_only=True)
    paid_at = serializers.DateTimeField(read_only=True, allow_null=True)
    document_ref = serializers.CharField(read_only=True, allow_null=True)

    class Meta(RecurringPeriodSerializer.Meta):
        fields = RecurringPeriodSerializer.Meta.fields + [
            "period_label",
            "property_label",
            "paid_at",
            "document_ref",
        ]
        read_only_fields = fields

    def get_period_label(self, obj) -> str:
        return rent_reports.period_label(obj.period_month, obj.period_year)


class OwnerRentHistorySerializer(RentHistorySerializer):
    tenant = serializers.SerializerMethodField()
    property_address = serializers.CharField(source="unit.address", read_only=True)

    class Meta(RentHistorySerializer.Meta):
        fields = RentHistorySerializer.Meta.fields + ["tenant", "property_address"]
        read_only_fields = fields

    def get_tenant(self, obj) -> dict:
        tenant = obj.tenant
        return {
            "id": str(tenant.pk),
            "name": tenant.display_name,
            "email": tenant.email,
            "phone": tenant.phone,
        }


class CollectionSummarySerializer(serializers.Serializer):
    total_due = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_received = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_pending = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_count = serializers.IntegerField()


class RentStatisticsSerializer(serializers.Serializer):
    year = serializers.IntegerField()
    total_periods = serializers.IntegerField()
    paid_count = serializers.IntegerField()
    pending_count = serializers.IntegerField()
    total_paid = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_pending = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_late_fees = serializers.DecimalField(max_digits=14, decimal_places=2)
    months_paid = serializers.ListField(child=serializers.DictField())
    months_pending = serializers.ListField(child=serializers.DictField())


class ResidentInvoiceDetailSerializer(serializers.Serializer):
    invoice = AdHocInvoiceSerializer()
    payments = PaymentAttemptSerializer(many=True)
    total_paid = serializers.DecimalField(max_digits=12, decimal_places=2)
    outstanding = serializers.DecimalField(max_digits=12, decimal_places=2)


# ============================================================
# ADMIN INPUT
# ============================================================


class InvoiceGenerateSerializer(serializers.Serializer):
    month = serializers.IntegerField(min_value=1, max_value=12)
    year = serializers.IntegerField(min_value=2000)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0.01"))
    due_date = serializers.DateField(required=False, allow_null=True)
    property_ids = serializers.ListField(
        child=serializers.UUIDField(), required=False, allow_empty=True
    )


class InvoiceGenerateResponseSerializer(serializers.Serializer):
    month = serializers.IntegerField()
    year = serializers.IntegerField()
    total_targets = serializers.IntegerField()
    created_count = serializers.IntegerField()
    skipped_existing_count = serializers.IntegerField()


class InvoiceUpdateSerializer(serializers.Serializer):
    amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal("0.01"), required=False
    )
    due_date = serializers.DateField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("No valid fields to update")
        return attrs


class ManualPaymentSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0.01"))
    method = serializers.ChoiceField(
        choices=[
            PaymentAttempt.METHOD_CASH,
            PaymentAttempt.METHOD_CHEQUE,
            PaymentAttempt.METHOD_BANK_TRANSFER,
            PaymentAttempt.METHOD_OTHER,
            PaymentAttempt.METHOD_ONLINE,
        ]
    )
    reference = serializers.CharField(required=False, allow_blank=True, default="")
    paid_at = serializers.DateTimeField(required=False, allow_null=True)


class SummaryQuerySerializer(serializers.Serializer):
    month = serializers.IntegerField(min_value=1, max_value=12, required=False)
    year = serializers.IntegerField(min_value=2000, required=False)


class SummaryResponseSerializer(serializers.Serializer):
    total_invoices = serializers.IntegerField()
    total_amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_paid = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_outstanding = serializers.DecimalField(max_digits=14, decimal_places=2)
    count_overdue = serializers.IntegerField()


class LedgerTotalsResponseSerializer(serializers.Serializer):
    invoice = AdHocInvoiceSerializer()
    total_paid = serializers.DecimalField(max_digits=12, decimal_places=2)
    outstanding = serializers.DecimalField(max_digits=12, decimal_places=2)


# ============================================================
# PAYER INPUT / OUTPUT
# ============================================================


class OrderCreateSerializer(serializers.Serializer):
    amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, required=False, allow_null=True
    )


class OrderQuoteSerializer(serializers.Serializer):
    order_id = serializers.CharField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    amount_minor = serializers.IntegerField()
    currency = serializers.CharField()
    attempt_id = serializers.UUIDField()
    key_id = serializers.CharField()
    entry_id = serializers.UUIDField()
    entry_type = serializers.CharField()


class NextDueResponseSerializer(serializers.Serializer):
    period = RecurringPeriodSerializer(allow_null=True)
    total_paid = serializers.DecimalField(max_digits=12, decimal_places=2)
    outstanding = serializers.DecimalField(max_digits=12, decimal_places=2)


class PaymentProofSerializer(serializers.Serializer):
    order_id = serializers.CharField(max_length=128)
    payment_id = serializers.CharField(max_length=128)
    signature = serializers.CharField(max_length=255)


class ReconcileResponseSerializer(serializers.Serializer):
    ledger_status = serializers.CharField()
    total_paid = serializers.DecimalField(max_digits=12, decimal_places=2)
    outstanding = serializers.DecimalField(max_digits=12, decimal_places=2)
    attempt_state = serializers.CharField()


class PollResponseSerializer(serializers.Serializer):
    verified = serializers.BooleanField()
    order_status = serializers.CharField(allow_blank=True)
    detail = serializers.CharField(allow_blank=True, required=False)
    ledger_status = serializers.CharField(required=False)
    total_paid = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    outstanding = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    attempt_state = serializers.CharField(required=False)
