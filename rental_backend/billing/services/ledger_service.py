# billing/services/ledger_service.py

"""
LEDGER SERVICE

Owns everything derived from the set of payment attempts of an entry:
total paid, outstanding and status.

RULES:
- total_paid is the sum of APPROVED attempts only
- outstanding = max(ledger_amount - total_paid, 0)
- status is re-derived on every recalculation and written only on change
- attempts are never modified here
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import Sum
from django.utils import timezone

from billing.models import AdHocInvoice, PaymentAttempt, RecurringPeriod
from billing.services import calculator
from billing.services.exceptions import (
    InvalidAmount,
    LedgerEntryLocked,
    LedgerEntryNotFound,
)

logger = logging.getLogger(__name__)

LATE_FEE_FROZEN_AT_ORDER = "frozen_at_order"
LATE_FEE_FINALIZED_AT_CAPTURE = "finalized_at_capture"


@dataclass(frozen=True)
class LedgerTotals:
    entry: AdHocInvoice | RecurringPeriod
    total_paid: Decimal
    outstanding: Decimal

    @property
    def status(self) -> str:
        return self.entry.status


# ============================================================
# AGGREGATION
# ============================================================


def _attempts_for(entry):
    if isinstance(entry, AdHocInvoice):
        return PaymentAttempt.objects.filter(invoice_id=entry.pk)
    return PaymentAttempt.objects.filter(period_id=entry.pk)


def approved_total(entry) -> Decimal:
    agg = _attempts_for(entry).filter(state=PaymentAttempt.STATE_APPROVED).aggregate(
        total=Sum("amount")
    )
    return calculator.money(agg["total"])


def approved_totals_by_invoice(invoice_ids) -> dict:
    rows = (
        PaymentAttempt.objects.filter(
            invoice_id__in=list(invoice_ids),
            state=PaymentAttempt.STATE_APPROVED,
        )
        .values("invoice_id")
        .annotate(total=Sum("amount"))
    )
    return {row["invoice_id"]: calculator.money(row["total"]) for row in rows}


def _derive_status(entry, total_paid: Decimal, now: datetime) -> str:
    if isinstance(entry, AdHocInvoice):
        return calculator.derive_invoice_status(entry.amount, total_paid, entry.due_date, now)

    attempts = _attempts_for(entry)
    latest_gateway = (
        attempts.filter(source=PaymentAttempt.SOURCE_GATEWAY).order_by("-created_at").first()
    )
    return calculator.derive_period_status(
        entry.total_amount,
        total_paid,
        current_status=entry.status,
        has_pending_attempt=attempts.filter(state=PaymentAttempt.STATE_PENDING).exists(),
        latest_gateway_failed=bool(
            latest_gateway and latest_gateway.state == PaymentAttempt.STATE_FAILED
        ),
    )


def totals_for(entry) -> LedgerTotals:
    """Current totals without touching the stored status."""
    total_paid = approved_total(entry)
    return LedgerTotals(
        entry=entry,
        total_paid=total_paid,
        outstanding=calculator.outstanding(entry.ledger_amount, total_paid),
    )


def recalc_ledger_entry(entry, *, now: datetime | None = None) -> LedgerTotals:
    """
    Re-aggregate attempts and re-derive status.

    Safe to call any number of times, from any thread, in any order.
    """
    now = now or timezone.now()
    totals = totals_for(entry)
    new_status = _derive_status(entry, totals.total_paid, now)

    if new_status != entry.status:
        logger.info(
            "Ledger status changed",
            extra={
                "entry_id": str(entry.pk),
                "entry_type": entry.entry_type,
                "from_status": entry.status,
                "to_status": new_status,
            },
        )
        entry.status = new_status
        entry.save(update_fields=["status", "updated_at"])

    return totals


def lock_entry(entry):
    """Re-read the entry under a row lock. Must run inside an atomic block."""
    return type(entry).objects.select_for_update().get(pk=entry.pk)


def has_pending_attempt(entry) -> bool:
    return _attempts_for(entry).filter(state=PaymentAttempt.STATE_PENDING).exists()


def late_fee_policy() -> str:
    cfg = getattr(settings, "BILLING", {}) or {}
    policy = (cfg.get("LATE_FEE_POLICY") or LATE_FEE_FROZEN_AT_ORDER).strip().lower()
    if policy not in (LATE_FEE_FROZEN_AT_ORDER, LATE_FEE_FINALIZED_AT_CAPTURE):
        logger.warning("Unknown late fee policy; using frozen_at_order", extra={"policy": policy})
        return LATE_FEE_FROZEN_AT_ORDER
    return policy


def get_invoice(invoice_id) -> AdHocInvoice:
    try:
        return AdHocInvoice.objects.select_related("unit").get(pk=invoice_id)
    except (AdHocInvoice.DoesNotExist, ValueError, ValidationError) as exc:
        raise LedgerEntryNotFound(f"Invoice {invoice_id} not found") from exc


def get_period(period_id) -> RecurringPeriod:
    try:
        return RecurringPeriod.objects.select_related("unit", "tenant").get(pk=period_id)
    except (RecurringPeriod.DoesNotExist, ValueError, ValidationError) as exc:
        raise LedgerEntryNotFound(f"Rent period {period_id} not found") from exc


def recalc_invoice(invoice_id, *, now: datetime | None = None) -> LedgerTotals:
    return recalc_ledger_entry(get_invoice(invoice_id), now=now)


def recalc_period(period_id, *, now: datetime | None = None) -> LedgerTotals:
    return recalc_ledger_entry(get_period(period_id), now=now)


# ============================================================
# ADMIN OPERATIONS (ad-hoc invoices)
# ============================================================


def _positive_amount(value) -> Decimal:
    try:
        amount = calculator.money(value)
    except ValueError as exc:
        raise InvalidAmount("Amount must be a positive number") from exc
    if amount <= 0:
        raise InvalidAmount("Amount must be a positive number")
    return amount


@transaction.atomic
def record_manual_payment(
    *,
    invoice: AdHocInvoice,
    recorded_by,
    amount,
    method: str,
    reference: str = "",
    paid_at: datetime | None = None,
) -> tuple[PaymentAttempt, LedgerTotals]:
    """Offline payment (cash, cheque, transfer) entered by an admin; approved on entry."""
    amount = _positive_amount(amount)
    invoice = AdHocInvoice.objects.select_for_update().get(pk=invoice.pk)

    attempt = PaymentAttempt.objects.create(
        invoice=invoice,
        payer=recorded_by,
        amount=amount,
        method=method,
        source=PaymentAttempt.SOURCE_ADMIN,
        state=PaymentAttempt.STATE_APPROVED,
        reference=(reference or "").strip(),
        paid_at=paid_at or timezone.now(),
    )

    logger.info(
        "Manual payment recorded",
        extra={
            "invoice_id": str(invoice.pk),
            "attempt_id": str(attempt.pk),
            "amount": str(amount),
            "method": method,
        },
    )
    return attempt, recalc_ledger_entry(invoice)


@transaction.atomic
def update_invoice(
    *,
    invoice: AdHocInvoice,
    amount=None,
    due_date: date | None = None,
    notes: str | None = None,
) -> LedgerTotals:
    invoice = AdHocInvoice.objects.select_for_update().get(pk=invoice.pk)
    fields = []

    if amount is not None:
        amount = _positive_amount(amount)
        if amount != calculator.money(invoice.amount):
            if _attempts_for(invoice).exists():
                raise LedgerEntryLocked(
                    "Invoice amount cannot change once payments have been recorded"
                )
            invoice.amount = amount
            fields.append("amount")

    if due_date is not None:
        invoice.due_date = due_date
        fields.append("due_date")

    if notes is not None:
        invoice.notes = notes
        fields.append("notes")

    if fields:
        invoice.save(update_fields=fields + ["updated_at"])

    return recalc_ledger_entry(invoice)


def generate_invoices(
    *,
    month: int,
    year: int,
    amount,
    due_date: date | None = None,
    unit_ids=None,
) -> dict:
    """
    Create one invoice per unit for month/year.

    Existing (unit, month, year) invoices are skipped, never overwritten.
    Without unit_ids every active unit is targeted.
    """
    from properties.models import Property

    amount = _positive_amount(amount)
    due = due_date or calculator.default_invoice_due_date(year, month, _default_invoice_due_day())

    units = Property.objects.all()
    if unit_ids:
        units = units.filter(pk__in=list(unit_ids))
    else:
        units = units.filter(is_active=True)

    target_ids = list(units.values_list("pk", flat=True))
    existing = set(
        AdHocInvoice.objects.filter(unit_id__in=target_ids, month=month, year=year).values_list(
            "unit_id", flat=True
        )
    )

    created = 0
    skipped = 0
    for unit_id in target_ids:
        if unit_id in existing:
            skipped += 1
            continue
        try:
            with transaction.atomic():
                AdHocInvoice.objects.create(
                    unit_id=unit_id,
                    month=month,
                    year=year,
                    amount=amount,
                    due_date=due,
                )
            created += 1
        except IntegrityError:
            # Lost a race with a concurrent generate for the same unit/month.
            skipped += 1

    logger.info(
        "Invoices generated",
        extra={"month": month, "year": year, "created": created, "skipped": skipped},
    )
    return {
        "month": month,
        "year": year,
        "total_targets": len(target_ids),
        "created_count": created,
        "skipped_existing_count": skipped,
    }


def _default_invoice_due_day() -> int:
    billing = getattr(settings, "BILLING", {}) or {}
    return int(billing.get("DEFAULT_INVOICE_DUE_DAY") or calculator.DEFAULT_INVOICE_DUE_DAY)


def invoice_summary(*, month: int | None = None, year: int | None = None, now: datetime | None = None) -> dict:
    now = now or timezone.now()
    invoices = AdHocInvoice.objects.all()
    if month:
        invoices = invoices.filter(month=month)
    if year:
        invoices = invoices.filter(year=year)

    rows = list(invoices.values("id", "amount", "due_date", "status"))
    paid_map = approved_totals_by_invoice(row["id"] for row in rows)

    total_amount = Decimal("0.00")
    total_paid = Decimal("0.00")
    total_outstanding = Decimal("0.00")
    count_overdue = 0

    for row in rows:
        paid = paid_map.get(row["id"], Decimal("0.00"))
        owed = calculator.outstanding(row["amount"], paid)
        total_amount += calculator.money(row["amount"])
        total_paid += paid
        total_outstanding += owed

        if row["status"] == AdHocInvoice.STATUS_OVERDUE:
            count_overdue += 1
        elif (
            row["status"] != AdHocInvoice.STATUS_PAID
            and owed > 0
            and calculator.due_instant(row["due_date"]) < now
        ):
            count_overdue += 1

    return {
        "total_invoices": len(rows),
        "total_amount": calculator.money(total_amount),
        "total_paid": calculator.money(total_paid),
        "total_outstanding": calculator.money(total_outstanding),
        "count_overdue": count_overdue,
    }


# ============================================================
# RENT PERIODS
# ============================================================


def ensure_first_period(profile) -> RecurringPeriod | None:
    """
    Create the move-in period for a tenant profile if it does not exist.

    Requires move_in_date and a positive monthly rent. An owner-entered
    first_period_amount replaces the prorated base.
    """
    rent = calculator.money(profile.monthly_rent)
    if not profile.move_in_date or rent <= 0:
        return None

    move_in = profile.move_in_date
    existing = RecurringPeriod.objects.filter(
        tenant_id=profile.tenant_id,
        period_month=move_in.month,
        period_year=move_in.year,
    ).first()
    if existing:
        return existing

    quote = calculator.first_period_base(move_in, rent, profile.billing_due_day)
    base = quote.base_amount
    is_prorated = quote.is_prorated
    if profile.first_period_amount is not None:
        base = calculator.money(profile.first_period_amount)
        is_prorated = False

    other_charges = [
        {"description": str(c.get("description")), "amount": str(calculator.money(c.get("amount")))}
        for c in (profile.other_charges or [])
        if isinstance(c, dict) and c.get("description") and c.get("amount")
    ]

    try:
        with transaction.atomic():
            period = RecurringPeriod.objects.create(
                tenant_id=profile.tenant_id,
                unit_id=profile.property_id,
                period_month=move_in.month,
                period_year=move_in.year,
                billing_window_start=quote.window_start,
                billing_window_end=quote.window_end,
                due_date=quote.due_date,
                base_amount=base,
                late_fee_amount=Decimal("0.00"),
                is_first_period=True,
                is_prorated=is_prorated,
                security_deposit=calculator.money(profile.security_deposit),
                joining_fee=calculator.money(profile.joining_fee),
                other_charges=other_charges,
            )
    except IntegrityError:
        return RecurringPeriod.objects.get(
            tenant_id=profile.tenant_id,
            period_month=move_in.month,
            period_year=move_in.year,
        )

    logger.info(
        "First rent period created",
        extra={
            "tenant_id": str(profile.tenant_id),
            "period_id": str(period.pk),
            "base_amount": str(base),
            "is_prorated": is_prorated,
        },
    )
    return period


def generate_recurring_period(profile, year: int, month: int) -> tuple[RecurringPeriod, bool]:
    """Full-rent period for a month after move-in. Returns (period, created)."""
    start, end = calculator.billing_window(year, month)
    try:
        with transaction.atomic():
            period, created = RecurringPeriod.objects.get_or_create(
                tenant_id=profile.tenant_id,
                period_month=month,
                period_year=year,
                defaults={
                    "unit_id": profile.property_id,
                    "billing_window_start": start,
                    "billing_window_end": end,
                    "due_date": calculator.standard_due_date(year, month, profile.billing_due_day),
                    "base_amount": calculator.money(profile.monthly_rent),
                    "late_fee_amount": Decimal("0.00"),
                },
            )
    except IntegrityError:
        period = RecurringPeriod.objects.get(
            tenant_id=profile.tenant_id, period_month=month, period_year=year
        )
        created = False
    return period, created


def refresh_late_fee(period: RecurringPeriod, *, eval_at: datetime, profile=None) -> Decimal:
    """Recompute and persist the period's late fee as of eval_at."""
    profile = profile or _profile_for(period)
    if profile is None:
        return calculator.money(period.late_fee_amount)

    fee = calculator.late_fee(
        eval_at,
        period.period_year,
        period.period_month,
        profile.billing_grace_last_day,
        profile.late_fee_per_day,
    )
    if fee != calculator.money(period.late_fee_amount):
        period.late_fee_amount = fee
        period.save(update_fields=["late_fee_amount", "updated_at"])
    return fee


def _profile_for(period: RecurringPeriod):
    from properties.models import TenantProfile

    return TenantProfile.objects.filter(tenant_id=period.tenant_id).first()


def next_due_period(tenant, *, now: datetime | None = None):
    """
    Earliest unpaid period for a tenant, with its late fee refreshed to now.

    Makes sure the move-in period exists first. Under frozen_at_order the fee
    quoted to an open gateway order stays put until that order settles.
    """
    from properties.models import TenantProfile

    now = now or timezone.now()
    profile = TenantProfile.objects.filter(tenant=tenant, is_active=True).first()
    if profile is None:
        return None, None

    ensure_first_period(profile)

    period = (
        RecurringPeriod.objects.filter(tenant=tenant)
        .exclude(status__in=[RecurringPeriod.STATUS_PAID, RecurringPeriod.STATUS_REFUNDED])
        .order_by("period_year", "period_month")
        .first()
    )
    if period is None:
        return profile, None

    frozen = (
        late_fee_policy() == LATE_FEE_FROZEN_AT_ORDER and has_pending_attempt(period)
    )
    if frozen:
        logger.info(
            "Late fee kept at quoted value while an order is open",
            extra={"period_id": str(period.pk), "late_fee": str(period.late_fee_amount)},
        )
    else:
        refresh_late_fee(period, eval_at=now, profile=profile)
    return profile, recalc_ledger_entry(period, now=now)
