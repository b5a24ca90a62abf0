# billing/views/webhook.py

"""
GATEWAY WEBHOOK

POST /api/billing/webhooks/gateway/

Order of checks (each one stops processing):
1) webhook secret configured             else 500
2) X-Signature == HMAC-SHA256(raw body)  else 400 (no lookup, no write)
3) body is a JSON object                 else 400
4) order id present                      else 200 ack
5) event maps to an outcome              else 200 ack

After routing the response is always 200, known order or not, so the
gateway never retries a delivery we have already accepted.
"""

from __future__ import annotations

import json
import logging

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle
from rest_framework.views import APIView

from billing.services.gateway import gateway_config, verify_webhook_signature
from billing.services.reconciliation import (
    OUTCOME_APPROVED,
    OUTCOME_FAILED,
    PaymentEvidence,
    reconcile,
)
from billing.services.verification import timestamp_to_datetime

logger = logging.getLogger(__name__)

APPROVED_EVENTS = {"payment.captured", "order.paid"}
FAILED_EVENTS = {"payment.failed"}

# Payment entity status is only trusted on payment and order events;
# refund.* and dispute.* carry the original captured payment.
STATUS_FALLBACK_PREFIXES = ("payment.", "order.")


class WebhookThrottle(AnonRateThrottle):
    scope = "webhook"


def _entity(payload: dict, key: str) -> dict:
    block = payload.get(key) or {}
    if not isinstance(block, dict):
        return {}
    entity = block.get("entity") or {}
    return entity if isinstance(entity, dict) else {}


def extract_order_id(body: dict) -> str:
    payload = body.get("payload") or {}
    if not isinstance(payload, dict):
        return ""
    payment = _entity(payload, "payment")
    order = _entity(payload, "order")
    return str(payment.get("order_id") or order.get("id") or "").strip()


def classify_event(body: dict) -> str | None:
    event = str(body.get("event") or "").strip().lower()
    payload = body.get("payload") or {}
    payment_status = ""
    if isinstance(payload, dict):
        payment_status = str(_entity(payload, "payment").get("status") or "").strip().lower()

    if event in APPROVED_EVENTS:
        return OUTCOME_APPROVED
    if event in FAILED_EVENTS:
        return OUTCOME_FAILED
    if not event.startswith(STATUS_FALLBACK_PREFIXES):
        return None
    if payment_status == "captured":
        return OUTCOME_APPROVED
    if payment_status == "failed":
        return OUTCOME_FAILED
    return None


class GatewayWebhookView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [WebhookThrottle]

    @extend_schema(
        tags=["Billing"],
        request=None,
        responses={
            200: OpenApiResponse(description="Accepted"),
            400: OpenApiResponse(description="Invalid signature or body"),
            500: OpenApiResponse(description="Webhook secret not configured"),
        },
    )
    def post(self, request, *args, **kwargs):
        # Signature covers the exact bytes received; read before any parsing.
        raw_body = request.body or b""

        secret = (gateway_config().get("WEBHOOK_SECRET") or "").strip()
        if not secret:
            logger.error("Webhook secret not configured; rejecting delivery")
            return Response(
                {"ok": False, "detail": "Webhook not configured"},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        signature = request.headers.get("X-Signature")
        if not verify_webhook_signature(raw_body=raw_body, signature=signature, secret=secret):
            logger.warning("Invalid webhook signature")
            return Response(
                {"ok": False, "detail": "Invalid signature"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            body = json.loads(raw_body.decode("utf-8"))
        except (UnicodeDecodeError, ValueError):
            logger.warning("Webhook body is not valid JSON")
            return Response(
                {"ok": False, "detail": "Invalid JSON"}, status=status.HTTP_400_BAD_REQUEST
            )
        if not isinstance(body, dict):
            return Response(
                {"ok": False, "detail": "Invalid JSON"}, status=status.HTTP_400_BAD_REQUEST
            )

        event = str(body.get("event") or "")
        order_id = extract_order_id(body)
        if not order_id:
            logger.info("Webhook without order id acknowledged", extra={"event": event})
            return Response({"ok": True, "detail": "No order id"}, status=status.HTTP_200_OK)

        outcome = classify_event(body)
        if outcome is None:
            logger.info("Webhook event ignored", extra={"event": event, "order_id": order_id})
            return Response({"ok": True, "detail": "Ignored"}, status=status.HTTP_200_OK)

        payment = _entity(body.get("payload") or {}, "payment")
        evidence = PaymentEvidence(
            payment_id=str(payment.get("id") or ""),
            captured_at=timestamp_to_datetime(payment.get("captured_at")),
            channel="webhook",
        )

        result = reconcile(order_id, outcome, evidence)
        if result is None:
            return Response({"ok": True, "detail": "Unknown order"}, status=status.HTTP_200_OK)

        logger.info(
            "Webhook processed",
            extra={
                "event": event,
                "order_id": order_id,
                "attempt_state": result.attempt_state,
                "first_transition": result.first_transition,
            },
        )
        return Response({"ok": True, "detail": "Processed"}, status=status.HTTP_200_OK)
