# billing/services/order_service.py

"""
GATEWAY ORDER BROKER

Opens a gateway order for what a payer currently owes and records the
PENDING attempt that reconciliation will later settle.

RULES:
- Create-or-nothing: the gateway call and the attempt insert share one
  transaction; any failure leaves no attempt and no late-fee change
- Rent periods get their late fee refreshed to "now" before the amount is fixed
- Ledger status is never changed here
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from billing.models import AdHocInvoice, PaymentAttempt, RecurringPeriod
from billing.services import calculator, ledger_service
from billing.services.exceptions import AlreadySettled, GatewayUnavailable, InvalidAmount

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderQuote:
    order_id: str
    amount: Decimal
    amount_minor: int
    currency: str
    attempt_id: str
    key_id: str
    entry_id: str
    entry_type: str


def _charge_amount(requested_amount, outstanding: Decimal) -> Decimal:
    if requested_amount is None or requested_amount == "":
        amount = outstanding
    else:
        try:
            requested = calculator.money(requested_amount)
        except ValueError as exc:
            raise InvalidAmount("Amount must be a positive number") from exc
        if requested <= 0:
            raise InvalidAmount("Amount must be a positive number")
        amount = min(requested, outstanding)

    if amount <= 0:
        raise InvalidAmount("Nothing to charge")
    return amount


@transaction.atomic
def create_order(
    entry: AdHocInvoice | RecurringPeriod,
    payer,
    gateway,
    requested_amount=None,
    *,
    now: datetime | None = None,
) -> OrderQuote:
    if gateway is None:
        raise GatewayUnavailable("Payment gateway is not configured")

    now = now or timezone.now()
    entry = ledger_service.lock_entry(entry)

    totals = ledger_service.totals_for(entry)
    if totals.outstanding <= 0:
        raise AlreadySettled("Nothing outstanding on this entry")

    if isinstance(entry, RecurringPeriod):
        ledger_service.refresh_late_fee(entry, eval_at=now)
        totals = ledger_service.totals_for(entry)

    amount = _charge_amount(requested_amount, totals.outstanding)

    notes = {
        "entry_id": str(entry.pk),
        "entry_type": entry.entry_type,
        "payer_id": str(payer.pk),
        "unit_id": str(entry.unit_id),
    }
    order = gateway.create_order(amount=amount, receipt=entry.receipt, notes=notes)

    attempt_kwargs = {"invoice": entry} if isinstance(entry, AdHocInvoice) else {"period": entry}
    attempt = PaymentAttempt.objects.create(
        payer=payer,
        amount=amount,
        currency=order.currency,
        method=PaymentAttempt.METHOD_ONLINE,
        source=PaymentAttempt.SOURCE_GATEWAY,
        state=PaymentAttempt.STATE_PENDING,
        gateway_order_id=order.order_id,
        **attempt_kwargs,
    )

    logger.info(
        "Payment order opened",
        extra={
            "order_id": order.order_id,
            "attempt_id": str(attempt.pk),
            "entry_id": str(entry.pk),
            "entry_type": entry.entry_type,
            "amount": str(amount),
        },
    )

    return OrderQuote(
        order_id=order.order_id,
        amount=amount,
        amount_minor=order.amount_minor,
        currency=order.currency,
        attempt_id=str(attempt.pk),
        key_id=gateway.key_id,
        entry_id=str(entry.pk),
        entry_type=entry.entry_type,
    )
