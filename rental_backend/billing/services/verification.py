# billing/services/verification.py

"""
VERIFICATION ENTRY POINTS

Two ways (besides the webhook) to learn that a gateway order was paid:
- client proof: the checkout widget hands back {order_id, payment_id, signature}
- manual poll: ask the gateway directly when no callback ever arrived

Both end in reconciliation.reconcile(); neither writes attempt state itself.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone as dt_timezone

from django.core.exceptions import PermissionDenied, ValidationError

from billing.models import PaymentAttempt
from billing.services.exceptions import (
    AttemptNotFound,
    GatewayError,
    GatewayUnavailable,
    SignatureMismatch,
)
from billing.services.gateway import gateway_config, verify_payment_signature
from billing.services.reconciliation import (
    OUTCOME_APPROVED,
    PaymentEvidence,
    ReconcileResult,
    reconcile,
)

logger = logging.getLogger(__name__)

CAPTURED_STATUSES = {"captured"}


def timestamp_to_datetime(value) -> datetime | None:
    """Gateway timestamps are unix seconds."""
    if value in (None, "", 0):
        return None
    try:
        return datetime.fromtimestamp(int(value), tz=dt_timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        logger.warning("Invalid gateway timestamp", extra={"value": value})
        return None


# ============================================================
# CLIENT PROOF
# ============================================================


def verify_client_proof(*, order_id: str, payment_id: str, signature: str, user) -> ReconcileResult:
    secret = (gateway_config().get("KEY_SECRET") or "").strip()
    if not secret:
        raise GatewayUnavailable("Payment gateway is not configured")

    order_id = str(order_id or "").strip()
    payment_id = str(payment_id or "").strip()

    if not verify_payment_signature(
        order_id=order_id, payment_id=payment_id, signature=signature, secret=secret
    ):
        logger.warning("Payment signature mismatch", extra={"order_id": order_id})
        raise SignatureMismatch("Invalid payment signature")

    attempt = PaymentAttempt.objects.filter(gateway_order_id=order_id).only("id", "payer_id").first()
    if attempt is None:
        raise AttemptNotFound(f"No payment attempt for order {order_id}")
    if attempt.payer_id != user.pk:
        raise PermissionDenied("Payment attempt belongs to another payer")

    result = reconcile(
        order_id,
        OUTCOME_APPROVED,
        PaymentEvidence(payment_id=payment_id, signature=str(signature).strip(), channel="client"),
    )
    if result is None:
        raise AttemptNotFound(f"No payment attempt for order {order_id}")
    return result


# ============================================================
# MANUAL POLL
# ============================================================


@dataclass(frozen=True)
class PollOutcome:
    verified: bool
    order_status: str
    result: ReconcileResult | None = None
    detail: str = ""


def _captured_payment(payments: list[dict]) -> dict | None:
    for payment in payments:
        if payment.get("captured") is True:
            return payment
        if str(payment.get("status") or "").lower() in CAPTURED_STATUSES:
            return payment
    return None


def order_is_paid(order: dict, payments: list[dict]) -> bool:
    """
    Order-level OR payment-level success.

    A partially captured order with one captured payment counts as paid;
    this is an approximation of the gateway's truth, not an exact oracle.
    """
    if str(order.get("status") or "").lower() == "paid":
        return True
    try:
        amount = int(order.get("amount") or 0)
        amount_paid = int(order.get("amount_paid") or 0)
    except (TypeError, ValueError):
        amount, amount_paid = 0, 0
    if amount > 0 and amount_paid >= amount:
        return True
    return _captured_payment(payments) is not None


def poll_attempt(attempt: PaymentAttempt, gateway) -> PollOutcome:
    if attempt.is_terminal:
        result = reconcile(attempt.gateway_order_id, attempt.state, PaymentEvidence(channel="poll"))
        return PollOutcome(
            verified=attempt.state == PaymentAttempt.STATE_APPROVED,
            order_status=attempt.state.lower(),
            result=result,
        )

    if gateway is None:
        raise GatewayUnavailable("Payment gateway is not configured")

    order_id = attempt.gateway_order_id
    try:
        order = gateway.fetch_order(order_id)
        payments = gateway.fetch_order_payments(order_id)
    except GatewayError as exc:
        logger.warning(
            "Gateway poll failed",
            extra={"order_id": order_id, "attempt_id": str(attempt.pk), "error": str(exc)},
        )
        return PollOutcome(verified=False, order_status="", detail="Gateway unreachable; retry later")

    order_status = str(order.get("status") or "").lower()
    if not order_is_paid(order, payments):
        return PollOutcome(verified=False, order_status=order_status, detail="Payment not completed yet")

    captured = _captured_payment(payments) or {}
    captured_at = timestamp_to_datetime(captured.get("captured_at")) or timestamp_to_datetime(
        captured.get("created_at")
    )

    result = reconcile(
        order_id,
        OUTCOME_APPROVED,
        PaymentEvidence(
            payment_id=str(captured.get("id") or ""),
            captured_at=captured_at,
            channel="poll",
        ),
    )
    if result is None:
        return PollOutcome(verified=False, order_status=order_status, detail="Unknown payment attempt")
    return PollOutcome(
        verified=result.attempt_state == PaymentAttempt.STATE_APPROVED,
        order_status=order_status,
        result=result,
    )


def get_attempt(attempt_id) -> PaymentAttempt:
    try:
        return PaymentAttempt.objects.select_related("invoice", "period").get(pk=attempt_id)
    except (PaymentAttempt.DoesNotExist, ValueError, ValidationError) as exc:
        raise AttemptNotFound(f"Payment attempt {attempt_id} not found") from exc
