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
        ("properties", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="AdHocInvoice",
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
                ("due_date", models.DateField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "month",
                    models.PositiveSmallIntegerField(
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(12),
                        ]
                    ),
                ),
                (
                    "year",
                    models.PositiveSmallIntegerField(
                        validators=[django.core.validators.MinValueValidator(2000)]
                    ),
                ),
                (
                    "amount",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("PENDING", "Pending"),
                            ("PARTIALLY_PAID", "Partially paid"),
                            ("PAID", "Paid"),
                            ("OVERDUE", "Overdue"),
                        ],
                        default="PENDING",
                        max_length=20,
                    ),
                ),
                ("notes", models.TextField(blank=True, default="")),
                (
                    "unit",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="invoices",
                        to="properties.property",
                    ),
                ),
            ],
            options={
                "ordering": ["-year", "-month", "-created_at"],
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="RecurringPeriod",
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
                ("due_date", models.DateField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "period_month",
                    models.PositiveSmallIntegerField(
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(12),
                        ]
                    ),
                ),
                (
                    "period_year",
                    models.PositiveSmallIntegerField(
                        validators=[django.core.validators.MinValueValidator(2000)]
                    ),
                ),
                ("billing_window_start", models.DateField()),
                ("billing_window_end", models.DateField()),
                (
                    "base_amount",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12),
                ),
                (
                    "late_fee_amount",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12),
                ),
                ("is_first_period", models.BooleanField(default=False)),
                ("is_prorated", models.BooleanField(default=False)),
                (
                    "security_deposit",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12),
                ),
                (
                    "joining_fee",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12),
                ),
                ("other_charges", models.JSONField(blank=True, default=list)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("PENDING", "Pending"),
                            ("PAID", "Paid"),
                            ("FAILED", "Failed"),
                            ("REFUNDED", "Refunded"),
                        ],
                        default="PENDING",
                        max_length=20,
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="rent_periods",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "unit",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="rent_periods",
                        to="properties.property",
                    ),
                ),
            ],
            options={
                "ordering": ["period_year", "period_month"],
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="PaymentAttempt",
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
                    "amount",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.01"))],
                    ),
                ),
                ("currency", models.CharField(default="INR", max_length=8)),
                (
                    "method",
                    models.CharField(
                        choices=[
                            ("CASH", "Cash"),
                            ("CHEQUE", "Cheque"),
                            ("BANK_TRANSFER", "Bank transfer"),
                            ("OTHER", "Other"),
                            ("ONLINE", "Online"),
                        ],
                        default="ONLINE",
                        max_length=20,
                    ),
                ),
                (
                    "source",
                    models.CharField(
                        choices=[
                            ("ADMIN", "Admin"),
                            ("CITIZEN", "Citizen"),
                            ("GATEWAY", "Gateway"),
                        ],
                        default="GATEWAY",
                        max_length=20,
                    ),
                ),
                (
                    "state",
                    models.CharField(
                        choices=[
                            ("PENDING", "Pending"),
                            ("APPROVED", "Approved"),
                            ("FAILED", "Failed"),
                        ],
                        default="PENDING",
                        max_length=20,
                    ),
                ),
                (
                    "gateway_order_id",
                    models.CharField(blank=True, max_length=128, null=True, unique=True),
                ),
                ("gateway_payment_id", models.CharField(blank=True, default="", max_length=128)),
                ("gateway_signature", models.CharField(blank=True, default="", max_length=255)),
                ("reference", models.CharField(blank=True, default="", max_length=128)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                (
                    "document_ref",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Settlement document reference (receipt/invoice number).",
                        max_length=128,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "invoice",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payment_attempts",
                        to="billing.adhocinvoice",
                    ),
                ),
                (
                    "payer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payment_attempts",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "period",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payment_attempts",
                        to="billing.recurringperiod",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.AddConstraint(
            model_name="adhocinvoice",
            constraint=models.UniqueConstraint(
                fields=("unit", "month", "year"),
                name="uniq_invoice_unit_month_year",
            ),
        ),
        migrations.AddIndex(
            model_name="adhocinvoice",
            index=models.Index(fields=["status"], name="billing_adh_status_6f1c2a_idx"),
        ),
        migrations.AddIndex(
            model_name="adhocinvoice",
            index=models.Index(fields=["year", "month"], name="billing_adh_year_3b9e4d_idx"),
        ),
        migrations.AddConstraint(
            model_name="recurringperiod",
            constraint=models.UniqueConstraint(
                fields=("tenant", "period_month", "period_year"),
                name="uniq_rent_period_tenant_month_year",
            ),
        ),
        migrations.AddIndex(
            model_name="recurringperiod",
            index=models.Index(fields=["status"], name="billing_rec_status_8a2d71_idx"),
        ),
        migrations.AddIndex(
            model_name="recurringperiod",
            index=models.Index(fields=["tenant", "status"], name="billing_rec_tenant__c4e019_idx"),
        ),
        migrations.AddConstraint(
            model_name="paymentattempt",
            constraint=models.CheckConstraint(
                condition=models.Q(
                    models.Q(("invoice__isnull", False), ("period__isnull", True)),
                    models.Q(("invoice__isnull", True), ("period__isnull", False)),
                    _connector="OR",
                ),
                name="payment_attempt_single_ledger_entry",
            ),
        ),
        migrations.AddIndex(
            model_name="paymentattempt",
            index=models.Index(fields=["state"], name="billing_pay_state_5d7e33_idx"),
        ),
        migrations.AddIndex(
            model_name="paymentattempt",
            index=models.Index(fields=["invoice", "state"], name="billing_pay_invoice_9b1f6e_idx"),
        ),
        migrations.AddIndex(
            model_name="paymentattempt",
            index=models.Index(fields=["period", "state"], name="billing_pay_period__2e8c40_idx"),
        ),
    ]
