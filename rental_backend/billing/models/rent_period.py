# billing/models/rent_period.py

from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from billing.models.base import LedgerEntry
from billing.services.calculator import money, one_time_charges_total


class RecurringPeriod(LedgerEntry):
    """
    One month of rent for one tenant.

    total_amount = base + late fee (+ one-time charges on the first period).
    late_fee_amount is refreshed at order time; base and charges are fixed
    when the period is created.
    """

    ENTRY_TYPE = "rent"

    STATUS_PENDING = "PENDING"
    STATUS_PAID = "PAID"
    STATUS_FAILED = "FAILED"
    STATUS_REFUNDED = "REFUNDED"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_PAID, "Paid"),
        (STATUS_FAILED, "Failed"),
        (STATUS_REFUNDED, "Refunded"),
    ]

    tenant = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="rent_periods",
    )

    unit = models.ForeignKey(
        "properties.Property",
        on_delete=models.PROTECT,
        related_name="rent_periods",
    )

    period_month = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(12)]
    )
    period_year = models.PositiveSmallIntegerField(validators=[MinValueValidator(2000)])

    billing_window_start = models.DateField()
    billing_window_end = models.DateField()

    base_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    late_fee_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    is_first_period = models.BooleanField(default=False)
    is_prorated = models.BooleanField(default=False)

    # First period only
    security_deposit = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    joining_fee = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    other_charges = models.JSONField(default=list, blank=True)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)

    class Meta:
        ordering = ["period_year", "period_month"]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant", "period_month", "period_year"],
                name="uniq_rent_period_tenant_month_year",
            ),
        ]
        indexes = [
            models.Index(fields=["status"], name="billing_rec_status_8a2d71_idx"),
            models.Index(fields=["tenant", "status"], name="billing_rec_tenant__c4e019_idx"),
        ]

    @property
    def one_time_charges(self) -> Decimal:
        if not self.is_first_period:
            return Decimal("0.00")
        return one_time_charges_total(self.security_deposit, self.joining_fee, self.other_charges)

    @property
    def total_amount(self) -> Decimal:
        return money(money(self.base_amount) + money(self.late_fee_amount) + self.one_time_charges)

    @property
    def ledger_amount(self):
        return self.total_amount

    def payer_may_pay(self, user) -> bool:
        if not (user and user.is_authenticated):
            return False
        return self.tenant_id == user.pk

    def __str__(self):
        return f"Rent {self.period_month:02d}/{self.period_year} | {self.tenant} | {self.status}"
