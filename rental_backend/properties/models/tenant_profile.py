# properties/models/tenant_profile.py

from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


class TenantProfile(models.Model):
    """
    Rental terms for one tenant.

    The billing app listens for saves of this model: once move_in_date and a
    positive monthly_rent are present, the tenant's first rent period is
    ensured (idempotent per tenant/month/year).
    """

    tenant = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="tenant_profile",
    )

    property = models.ForeignKey(
        "properties.Property",
        on_delete=models.PROTECT,
        related_name="tenant_profiles",
    )

    room_number = models.CharField(max_length=50, blank=True, default="")
    bed_number = models.CharField(max_length=50, blank=True, default="")

    monthly_rent = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )

    # First period one-time charges
    security_deposit = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    joining_fee = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    other_charges = models.JSONField(
        default=list,
        blank=True,
        help_text="Itemized first-period charges: [{description, amount}]",
    )
    first_period_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Owner-entered first period rent. Overrides proration when set.",
    )

    move_in_date = models.DateField(null=True, blank=True)

    billing_due_day = models.PositiveSmallIntegerField(
        default=1, validators=[MinValueValidator(1), MaxValueValidator(31)]
    )
    billing_grace_last_day = models.PositiveSmallIntegerField(
        default=5, validators=[MinValueValidator(1), MaxValueValidator(31)]
    )
    late_fee_per_day = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("50.00")
    )

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.tenant} @ {self.property} | {self.monthly_rent}"
