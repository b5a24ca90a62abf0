# properties/models/property.py

import uuid

from django.conf import settings
from django.db import models
from django.db.models import Q


class Property(models.Model):
    """
    A billable unit: a flat in a society or a PG/rental property.

    Billing context:
    - owner is the payee on rent periods and settlement receipts
    - residents may pay the unit's ad-hoc (maintenance) invoices
    """

    KIND_FLAT = "flat"
    KIND_PG = "pg"

    KIND_CHOICES = [
        (KIND_FLAT, "Flat"),
        (KIND_PG, "PG / Rental"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    kind = models.CharField(max_length=16, choices=KIND_CHOICES, default=KIND_FLAT)

    name = models.CharField(max_length=255, blank=True, default="")
    building_name = models.CharField(max_length=255, blank=True, default="")
    block = models.CharField(max_length=50, blank=True, default="")
    unit_number = models.CharField(
        max_length=50,
        null=True,
        blank=True,
        help_text="Flat/unit number (optional). Unique within a building when set.",
    )

    address = models.TextField(blank=True)
    city = models.CharField(max_length=120, blank=True, default="")

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="owned_properties",
    )

    residents = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        blank=True,
        related_name="units",
    )

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["building_name", "unit_number"]
        verbose_name_plural = "properties"
        constraints = [
            models.UniqueConstraint(
                fields=["building_name", "block", "unit_number"],
                condition=Q(unit_number__isnull=False) & ~Q(unit_number=""),
                name="uniq_property_unit_when_present",
            ),
        ]

    @property
    def label(self) -> str:
        if self.name:
            return self.name
        parts = [self.building_name, self.block, self.unit_number]
        return " ".join(p for p in parts if p) or str(self.id)

    def __str__(self):
        return self.label
