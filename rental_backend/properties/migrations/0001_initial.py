from __future__ import annotations

import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Property",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "kind",
                    models.CharField(
                        choices=[("flat", "Flat"), ("pg", "PG / Rental")],
                        default="flat",
                        max_length=16,
                    ),
                ),
                ("name", models.CharField(blank=True, default="", max_length=255)),
                ("building_name", models.CharField(blank=True, default="", max_length=255)),
                ("block", models.CharField(blank=True, default="", max_length=50)),
                (
                    "unit_number",
                    models.CharField(
                        blank=True,
                        help_text="Flat/unit number (optional). Unique within a building when set.",
                        max_length=50,
                        null=True,
                    ),
                ),
                ("address", models.TextField(blank=True)),
                ("city", models.CharField(blank=True, default="", max_length=120)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "owner",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="owned_properties",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "residents",
                    models.ManyToManyField(
                        blank=True,
                        related_name="units",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["building_name", "unit_number"],
                "verbose_name_plural": "properties",
            },
        ),
        migrations.AddConstraint(
            model_name="property",
            constraint=models.UniqueConstraint(
                condition=models.Q(("unit_number__isnull", False), models.Q(("unit_number", ""), _negated=True)),
                fields=("building_name", "block", "unit_number"),
                name="uniq_property_unit_when_present",
            ),
        ),
        migrations.CreateModel(
            name="TenantProfile",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("room_number", models.CharField(blank=True, default="", max_length=50)),
                ("bed_number", models.CharField(blank=True, default="", max_length=50)),
                (
                    "monthly_rent",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                (
                    "security_deposit",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12),
                ),
                (
                    "joining_fee",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12),
                ),
                (
                    "other_charges",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text="Itemized first-period charges: [{description, amount}]",
                    ),
                ),
                (
                    "first_period_amount",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        help_text="Owner-entered first period rent. Overrides proration when set.",
                        max_digits=12,
                        null=True,
                    ),
                ),
                ("move_in_date", models.DateField(blank=True, null=True)),
                (
                    "billing_due_day",
                    models.PositiveSmallIntegerField(
                        default=1,
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(31),
                        ],
                    ),
                ),
                (
                    "billing_grace_last_day",
                    models.PositiveSmallIntegerField(
                        default=5,
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(31),
                        ],
                    ),
                ),
                (
                    "late_fee_per_day",
                    models.DecimalField(decimal_places=2, default=Decimal("50.00"), max_digits=10),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "property",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="tenant_profiles",
                        to="properties.property",
                    ),
                ),
                (
                    "tenant",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="tenant_profile",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
    ]
