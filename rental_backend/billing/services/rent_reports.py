# billing/services/rent_reports.py

"""
RENT REPORTS (READ ONLY)

Tenant-facing history and statistics, owner-facing collections.

RULES:
- Nothing here writes; late fees are shown as last persisted
- paid_at / document_ref come from the latest APPROVED attempt of a period
- Owners only ever see periods of units they own; billing admins see all
- Money totals are summed from total_amount (base + late fee + first-period charges)
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from decimal import Decimal

from django.db.models import OuterRef, Q, Subquery
from django.utils import timezone

from billing.models import PaymentAttempt, RecurringPeriod
from billing.services.calculator import money
from users.permissions import is_billing_admin

HISTORY_LAST5 = "last5"
HISTORY_LAST_MONTH = "lastMonth"
HISTORY_CURRENT_YEAR = "currentYear"

HISTORY_FILTERS = (HISTORY_LAST5, HISTORY_LAST_MONTH, HISTORY_CURRENT_YEAR)

MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def period_label(month: int, year: int) -> str:
    return f"{MONTH_ABBR[month - 1]} {year}"


def history_filter(raw: str | None) -> str:
    """Unknown or missing values fall back to the current year."""
    return raw if raw in HISTORY_FILTERS else HISTORY_CURRENT_YEAR


def previous_month(today: date) -> tuple[int, int]:
    if today.month == 1:
        return 12, today.year - 1
    return today.month - 1, today.year


def day_bounds(d: date) -> tuple[datetime, datetime]:
    """Timezone-aware [start, end) for a local date."""
    tz = timezone.get_current_timezone()
    start = timezone.make_aware(datetime.combine(d, time.min), tz)
    return start, start + timedelta(days=1)


# ============================================================
# QUERYSETS
# ============================================================


def with_settlement(queryset):
    """Annotate paid_at and document_ref of the latest approved attempt."""
    latest = PaymentAttempt.objects.filter(
        period_id=OuterRef("pk"), state=PaymentAttempt.STATE_APPROVED
    ).order_by("-paid_at", "-created_at")
    return queryset.annotate(
        paid_at=Subquery(latest.values("paid_at")[:1]),
        document_ref=Subquery(latest.values("document_ref")[:1]),
    )


def tenant_history(tenant, filter_key: str, *, today: date | None = None):
    today = today or timezone.localdate()
    qs = with_settlement(
        RecurringPeriod.objects.select_related("unit").filter(tenant=tenant)
    ).order_by("-period_year", "-period_month", "-created_at")

    if filter_key == HISTORY_LAST5:
        return qs[:5]
    if filter_key == HISTORY_LAST_MONTH:
        month, year = previous_month(today)
        return qs.filter(period_month=month, period_year=year)
    return qs.filter(period_year=today.year)


def owner_periods(user):
    qs = RecurringPeriod.objects.select_related("tenant", "unit")
    if not is_billing_admin(user):
        qs = qs.filter(unit__owner=user)
    return with_settlement(qs).order_by("-period_year", "-period_month", "-created_at")


def activity_window(start: date | None, end: date | None) -> Q:
    """Due inside the window, or paid inside it."""
    due = Q()
    paid = Q()
    if start is not None:
        due &= Q(due_date__gte=start)
        paid &= Q(paid_at__gte=day_bounds(start)[0])
    if end is not None:
        due &= Q(due_date__lte=end)
        paid &= Q(paid_at__lt=day_bounds(end)[1])
    return due | paid


# ============================================================
# AGGREGATES
# ============================================================


def collection_summary(periods) -> dict:
    total_due = Decimal("0.00")
    total_received = Decimal("0.00")
    total_pending = Decimal("0.00")
    count = 0

    for period in periods:
        amount = period.total_amount
        count += 1
        total_due += amount
        if period.status == RecurringPeriod.STATUS_PAID:
            total_received += amount
        elif period.status == RecurringPeriod.STATUS_PENDING:
            total_pending += amount

    return {
        "total_due": str(money(total_due)),
        "total_received": str(money(total_received)),
        "total_pending": str(money(total_pending)),
        "total_count": count,
    }


def tenant_statistics(tenant, *, year: int | None = None) -> dict:
    """
    Year-to-date rent picture for one tenant.

    FAILED periods count towards total_periods only.
    """
    year = year or timezone.localdate().year
    periods = list(
        with_settlement(RecurringPeriod.objects.filter(tenant=tenant, period_year=year)).order_by(
            "period_month"
        )
    )

    paid = [p for p in periods if p.status == RecurringPeriod.STATUS_PAID]
    pending = [p for p in periods if p.status == RecurringPeriod.STATUS_PENDING]

    return {
        "year": year,
        "total_periods": len(periods),
        "paid_count": len(paid),
        "pending_count": len(pending),
        "total_paid": str(money(sum((p.total_amount for p in paid), Decimal("0.00")))),
        "total_pending": str(money(sum((p.total_amount for p in pending), Decimal("0.00")))),
        "total_late_fees": str(money(sum((p.late_fee_amount for p in paid), Decimal("0.00")))),
        "months_paid": [
            {
                "month": p.period_month,
                "year": p.period_year,
                "label": period_label(p.period_month, p.period_year),
                "amount": str(p.total_amount),
                "paid_at": p.paid_at,
            }
            for p in paid
        ],
        "months_pending": [
            {
                "month": p.period_month,
                "year": p.period_year,
                "label": period_label(p.period_month, p.period_year),
                "amount": str(p.total_amount),
                "due_date": p.due_date,
            }
            for p in pending
        ],
    }
