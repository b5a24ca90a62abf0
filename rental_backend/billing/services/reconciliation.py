# billing/services/reconciliation.py

"""
RECONCILIATION ENGINE

Single entry point used by the webhook, the client payment proof and the
manual poll to move a gateway attempt out of PENDING.

GUARANTEES:
- The PENDING -> APPROVED/FAILED transition happens at most once per attempt
  (row lock + conditional UPDATE filtered on state=PENDING)
- Only the caller that performed the transition schedules settlement
- The ledger entry row is locked before re-aggregation, so concurrent
  approvals on one entry recalculate one after the other
- Every other caller gets the current totals and first_transition=False
- Unknown order ids are reported, not raised
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from billing.models import PaymentAttempt, RecurringPeriod
from billing.services import ledger_service
from billing.services.ledger_service import (
    LATE_FEE_FINALIZED_AT_CAPTURE,
    late_fee_policy,
)
from billing.services.settlement import get_dispatcher

logger = logging.getLogger(__name__)

OUTCOME_APPROVED = PaymentAttempt.STATE_APPROVED
OUTCOME_FAILED = PaymentAttempt.STATE_FAILED


@dataclass(frozen=True)
class PaymentEvidence:
    payment_id: str = ""
    signature: str = ""
    captured_at: datetime | None = None
    channel: str = ""


@dataclass(frozen=True)
class ReconcileResult:
    ledger_status: str
    total_paid: Decimal
    outstanding: Decimal
    attempt_state: str
    first_transition: bool
    attempt: PaymentAttempt

    def as_dict(self) -> dict:
        return {
            "ledger_status": self.ledger_status,
            "total_paid": str(self.total_paid),
            "outstanding": str(self.outstanding),
            "attempt_state": self.attempt_state,
            "first_transition": self.first_transition,
        }


def _result(attempt: PaymentAttempt, totals, *, first_transition: bool) -> ReconcileResult:
    return ReconcileResult(
        ledger_status=totals.entry.status,
        total_paid=totals.total_paid,
        outstanding=totals.outstanding,
        attempt_state=attempt.state,
        first_transition=first_transition,
        attempt=attempt,
    )


def reconcile(
    order_id: str,
    outcome: str,
    evidence: PaymentEvidence | None = None,
    *,
    dispatcher=None,
    now: datetime | None = None,
) -> ReconcileResult | None:
    if outcome not in (OUTCOME_APPROVED, OUTCOME_FAILED):
        raise ValueError(f"Unsupported reconciliation outcome: {outcome!r}")

    order_id = str(order_id or "").strip()
    if not order_id:
        logger.warning("Reconcile called without order id", extra={"outcome": outcome})
        return None

    evidence = evidence or PaymentEvidence()
    now = now or timezone.now()

    with transaction.atomic():
        attempt = (
            PaymentAttempt.objects.select_for_update()
            .filter(gateway_order_id=order_id)
            .first()
        )
        if attempt is None:
            logger.warning(
                "Unknown gateway order",
                extra={"order_id": order_id, "outcome": outcome, "channel": evidence.channel},
            )
            return None

        if attempt.is_terminal:
            return _replay(attempt, outcome, evidence)

        fields = {"state": outcome, "updated_at": now}
        if outcome == OUTCOME_APPROVED:
            fields["paid_at"] = evidence.captured_at or now
            if evidence.payment_id:
                fields["gateway_payment_id"] = evidence.payment_id
            if evidence.signature:
                fields["gateway_signature"] = evidence.signature

        won = PaymentAttempt.objects.filter(
            pk=attempt.pk, state=PaymentAttempt.STATE_PENDING
        ).update(**fields)

        if not won:
            attempt.refresh_from_db()
            return _replay(attempt, outcome, evidence)

        attempt.refresh_from_db()
        entry = ledger_service.lock_entry(attempt.entry)

        if (
            outcome == OUTCOME_APPROVED
            and isinstance(entry, RecurringPeriod)
            and late_fee_policy() == LATE_FEE_FINALIZED_AT_CAPTURE
        ):
            ledger_service.refresh_late_fee(entry, eval_at=attempt.paid_at)

        totals = ledger_service.recalc_ledger_entry(entry, now=now)

        logger.info(
            "Payment attempt reconciled",
            extra={
                "order_id": order_id,
                "attempt_id": str(attempt.pk),
                "state": attempt.state,
                "channel": evidence.channel,
                "ledger_status": totals.entry.status,
                "total_paid": str(totals.total_paid),
            },
        )

        if outcome == OUTCOME_APPROVED:
            dispatcher = dispatcher or get_dispatcher()
            attempt_id = attempt.pk
            transaction.on_commit(lambda: dispatcher.submit(attempt_id))

        return _result(attempt, totals, first_transition=True)


def _replay(attempt: PaymentAttempt, outcome: str, evidence: PaymentEvidence) -> ReconcileResult:
    if attempt.state != outcome:
        logger.warning(
            "Conflicting outcome for settled attempt ignored",
            extra={
                "attempt_id": str(attempt.pk),
                "state": attempt.state,
                "outcome": outcome,
                "channel": evidence.channel,
            },
        )
    else:
        logger.info(
            "Duplicate reconciliation ignored",
            extra={"attempt_id": str(attempt.pk), "state": attempt.state, "channel": evidence.channel},
        )
    totals = ledger_service.totals_for(attempt.entry)
    return _result(attempt, totals, first_transition=False)
