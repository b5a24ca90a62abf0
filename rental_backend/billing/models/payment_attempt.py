# billing/models/payment_attempt.py

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q


class PaymentAttempt(models.Model):
    """
    One try at settling (part of) a ledger entry.

    Rules:
    - belongs to exactly one of invoice / period (DB check constraint)
    - ADMIN attempts are recorded APPROVED; GATEWAY attempts start PENDING
    - APPROVED and FAILED are terminal; only PENDING rows are ever updated
    - gateway_order_id is unique: it is the reconciliation lookup key
    """

    STATE_PENDING = "PENDING"
    STATE_APPROVED = "APPROVED"
    STATE_FAILED = "FAILED"

    STATE_CHOICES = [
        (STATE_PENDING, "Pending"),
        (STATE_APPROVED, "Approved"),
        (STATE_FAILED, "Failed"),
    ]

    TERMINAL_STATES = {STATE_APPROVED, STATE_FAILED}

    METHOD_CASH = "CASH"
    METHOD_CHEQUE = "CHEQUE"
    METHOD_BANK_TRANSFER = "BANK_TRANSFER"
    METHOD_OTHER = "OTHER"
    METHOD_ONLINE = "ONLINE"

    METHOD_CHOICES = [
        (METHOD_CASH, "Cash"),
        (METHOD_CHEQUE, "Cheque"),
        (METHOD_BANK_TRANSFER, "Bank transfer"),
        (METHOD_OTHER, "Other"),
        (METHOD_ONLINE, "Online"),
    ]

    SOURCE_ADMIN = "ADMIN"
    SOURCE_CITIZEN = "CITIZEN"
    SOURCE_GATEWAY = "GATEWAY"

    SOURCE_CHOICES = [
        (SOURCE_ADMIN, "Admin"),
        (SOURCE_CITIZEN, "Citizen"),
        (SOURCE_GATEWAY, "Gateway"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    invoice = models.ForeignKey(
        "billing.AdHocInvoice",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="payment_attempts",
    )
    period = models.ForeignKey(
        "billing.RecurringPeriod",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="payment_attempts",
    )

    payer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="payment_attempts",
    )

    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    currency = models.CharField(max_length=8, default="INR")

    method = models.CharField(max_length=20, choices=METHOD_CHOICES, default=METHOD_ONLINE)
    source = models.CharField(max_length=20, choices=SOURCE_CHOICES, default=SOURCE_GATEWAY)
    state = models.CharField(max_length=20, choices=STATE_CHOICES, default=STATE_PENDING)

    gateway_order_id = models.CharField(max_length=128, null=True, blank=True, unique=True)
    gateway_payment_id = models.CharField(max_length=128, blank=True, default="")
    gateway_signature = models.CharField(max_length=255, blank=True, default="")

    reference = models.CharField(max_length=128, blank=True, default="")
    paid_at = models.DateTimeField(null=True, blank=True)

    document_ref = models.CharField(
        max_length=128,
        blank=True,
        default="",
        help_text="Settlement document reference (receipt/invoice number).",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(invoice__isnull=False, period__isnull=True)
                    | Q(invoice__isnull=True, period__isnull=False)
                ),
                name="payment_attempt_single_ledger_entry",
            ),
        ]
        indexes = [
            models.Index(fields=["state"], name="billing_pay_state_5d7e33_idx"),
            models.Index(fields=["invoice", "state"], name="billing_pay_invoice_9b1f6e_idx"),
            models.Index(fields=["period", "state"], name="billing_pay_period__2e8c40_idx"),
        ]

    @property
    def entry(self):
        return self.invoice if self.invoice_id else self.period

    @property
    def is_terminal(self) -> bool:
        return self.state in self.TERMINAL_STATES

    def __str__(self):
        return f"{self.source}:{self.gateway_order_id or self.id} | {self.amount} | {self.state}"
