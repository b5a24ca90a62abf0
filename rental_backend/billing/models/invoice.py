# billing/models/invoice.py

from decimal import Decimal

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from billing.models.base import LedgerEntry


class AdHocInvoice(LedgerEntry):
    """
    Maintenance-style invoice raised for a unit for one month.

    amount is fixed once any payment attempt references the invoice.
    """

    ENTRY_TYPE = "invoice"

    STATUS_PENDING = "PENDING"
    STATUS_PARTIALLY_PAID = "PARTIALLY_PAID"
    STATUS_PAID = "PAID"
    STATUS_OVERDUE = "OVERDUE"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_PARTIALLY_PAID, "Partially paid"),
        (STATUS_PAID, "Paid"),
        (STATUS_OVERDUE, "Overdue"),
    ]

    unit = models.ForeignKey(
        "properties.Property",
        on_delete=models.PROTECT,
        related_name="invoices",
    )

    month = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(12)]
    )
    year = models.PositiveSmallIntegerField(validators=[MinValueValidator(2000)])

    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    notes = models.TextField(blank=True, default="")

    class Meta:
        ordering = ["-year", "-month", "-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["unit", "month", "year"],
                name="uniq_invoice_unit_month_year",
            ),
        ]
        indexes = [
            models.Index(fields=["status"], name="billing_adh_status_6f1c2a_idx"),
            models.Index(fields=["year", "month"], name="billing_adh_year_3b9e4d_idx"),
        ]

    @property
    def ledger_amount(self):
        return self.amount

    def payer_may_pay(self, user) -> bool:
        if not (user and user.is_authenticated):
            return False
        return self.unit.residents.filter(pk=user.pk).exists()

    def __str__(self):
        return f"Invoice {self.month:02d}/{self.year} | {self.unit} | {self.amount}"
