# billing/services/calculator.py

"""
RENT & INVOICE ARITHMETIC

Pure functions: no database access, no clock reads.
Every caller passes "now" (or the evaluation instant) explicitly so the
same inputs always produce the same fee, base amount and status.

RULES:
- Money is Decimal, quantized to 2 places with ROUND_HALF_UP
- Late fees accrue in whole days; any fraction of a day counts as a full day
- Grace ends at the last microsecond of the grace day, in the active timezone
"""

from __future__ import annotations

import calendar
import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.utils import timezone

TWOPLACES = Decimal("0.01")
ONE = Decimal("1")
ZERO = Decimal("0.00")

FULL_RENT_LAST_MOVE_IN_DAY = 5
DEFAULT_INVOICE_DUE_DAY = 10

# Status values shared with the ledger models (kept as plain strings here so
# this module stays importable without the app registry).
INVOICE_PENDING = "PENDING"
INVOICE_PARTIALLY_PAID = "PARTIALLY_PAID"
INVOICE_PAID = "PAID"
INVOICE_OVERDUE = "OVERDUE"

PERIOD_PENDING = "PENDING"
PERIOD_PAID = "PAID"
PERIOD_FAILED = "FAILED"
PERIOD_REFUNDED = "REFUNDED"


def money(value) -> Decimal:
    if value is None or value == "":
        return ZERO
    try:
        return Decimal(str(value)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise ValueError(f"Invalid money value: {value!r}") from exc


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def _clamp_day(year: int, month: int, day: int) -> int:
    return max(1, min(int(day), days_in_month(year, month)))


def _local_datetime(day: date, at: time) -> datetime:
    return timezone.make_aware(datetime.combine(day, at), timezone.get_current_timezone())


# ============================================================
# LATE FEE
# ============================================================


def grace_end(period_year: int, period_month: int, grace_last_day: int) -> datetime:
    """Last instant of the grace window (23:59:59.999999 local time)."""
    day = date(period_year, period_month, _clamp_day(period_year, period_month, grace_last_day))
    return _local_datetime(day, time.max)


def late_fee(
    eval_at: datetime,
    period_year: int,
    period_month: int,
    grace_last_day: int = 5,
    per_diem_fee=Decimal("50.00"),
) -> Decimal:
    """
    Late fee owed for a billing month when settled at eval_at.

    0 on or before the grace end; afterwards ceil(elapsed days) x per-diem.
    A payment one second past grace is one full late day.
    """
    if timezone.is_naive(eval_at):
        eval_at = timezone.make_aware(eval_at, timezone.get_current_timezone())

    end = grace_end(period_year, period_month, grace_last_day)
    if eval_at <= end:
        return ZERO

    elapsed = (eval_at - end) / timedelta(days=1)
    late_days = math.ceil(elapsed)
    return money(Decimal(late_days) * money(per_diem_fee))


# ============================================================
# PERIOD WINDOWS & DUE DATES
# ============================================================


def billing_window(year: int, month: int) -> tuple[date, date]:
    return date(year, month, 1), date(year, month, days_in_month(year, month))


def standard_due_date(year: int, month: int, due_day: int = 1) -> date:
    return date(year, month, _clamp_day(year, month, due_day))


def default_invoice_due_date(year: int, month: int, due_day: int = DEFAULT_INVOICE_DUE_DAY) -> date:
    """Ad-hoc invoices for a month fall due on a fixed day of the following month."""
    if month == 12:
        year, month = year + 1, 1
    else:
        month += 1
    return standard_due_date(year, month, due_day)


def due_instant(due_date: date) -> datetime:
    """Start of the due date in the active timezone."""
    return _local_datetime(due_date, time.min)


# ============================================================
# FIRST PERIOD
# ============================================================


@dataclass(frozen=True)
class FirstPeriodQuote:
    base_amount: Decimal
    is_prorated: bool
    days_staying: int
    days_in_month: int
    due_date: date
    window_start: date
    window_end: date


def first_period_base(move_in_date: date, monthly_rent, due_day: int = 1) -> FirstPeriodQuote:
    """
    Base rent for the move-in month.

    Move-in on day 1-5: full rent, due on the standard due day.
    Later: rent x remaining days (move-in day included) / days in month,
    rounded half-up to a whole currency unit, due on the move-in date.
    """
    year, month, day = move_in_date.year, move_in_date.month, move_in_date.day
    total_days = days_in_month(year, month)
    rent = money(monthly_rent)
    _, window_end = billing_window(year, month)

    if day <= FULL_RENT_LAST_MOVE_IN_DAY:
        return FirstPeriodQuote(
            base_amount=rent,
            is_prorated=False,
            days_staying=total_days,
            days_in_month=total_days,
            due_date=standard_due_date(year, month, due_day),
            window_start=move_in_date,
            window_end=window_end,
        )

    staying = total_days - day + 1
    prorated = (rent * Decimal(staying) / Decimal(total_days)).quantize(ONE, rounding=ROUND_HALF_UP)
    return FirstPeriodQuote(
        base_amount=money(prorated),
        is_prorated=True,
        days_staying=staying,
        days_in_month=total_days,
        due_date=move_in_date,
        window_start=move_in_date,
        window_end=window_end,
    )


def one_time_charges_total(security_deposit=None, joining_fee=None, other_charges=None) -> Decimal:
    total = money(security_deposit) + money(joining_fee)
    for charge in other_charges or []:
        if isinstance(charge, dict):
            total += money(charge.get("amount"))
    return money(total)


# ============================================================
# STATUS DERIVATION
# ============================================================


def derive_invoice_status(amount, total_paid, due_date: date | None, now: datetime) -> str:
    amount = money(amount)
    total_paid = money(total_paid)

    if total_paid >= amount:
        return INVOICE_PAID
    if total_paid > ZERO:
        return INVOICE_PARTIALLY_PAID
    if due_date is not None and due_instant(due_date) < now:
        return INVOICE_OVERDUE
    return INVOICE_PENDING


def derive_period_status(
    total_amount,
    total_paid,
    *,
    current_status: str = PERIOD_PENDING,
    has_pending_attempt: bool = False,
    latest_gateway_failed: bool = False,
) -> str:
    if current_status == PERIOD_REFUNDED:
        return PERIOD_REFUNDED

    total_amount = money(total_amount)
    total_paid = money(total_paid)

    if total_paid >= total_amount:
        return PERIOD_PAID
    if total_paid == ZERO and not has_pending_attempt and latest_gateway_failed:
        return PERIOD_FAILED
    return PERIOD_PENDING


def outstanding(amount, total_paid) -> Decimal:
    return max(money(amount) - money(total_paid), ZERO)
