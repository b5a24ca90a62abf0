# billing/views/verification.py

"""
PAYMENT VERIFICATION API

- POST /api/billing/payments/verify/               checkout widget proof
- POST /api/billing/payments/<attempt_id>/poll/    ask the gateway directly

Both feed the same reconciliation engine as the webhook, so any order of
arrival converges on one result.
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.parsers import JSONParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import UserRateThrottle
from rest_framework.views import APIView

from billing.serializers import (
    PaymentProofSerializer,
    PollResponseSerializer,
    ReconcileResponseSerializer,
)
from billing.services import verification
from billing.services.exceptions import AttemptNotFound, BillingError
from billing.services.gateway import get_gateway
from billing.views.errors import billing_error_response
from users.permissions import is_billing_admin

logger = logging.getLogger(__name__)


class VerifyThrottle(UserRateThrottle):
    """
    For payment verification endpoints (client proof, manual poll).
    Uses REST_FRAMEWORK['DEFAULT_THROTTLE_RATES']['verify'].
    """

    scope = "verify"


def _result_payload(result) -> dict:
    return {
        "ledger_status": result.ledger_status,
        "total_paid": str(result.total_paid),
        "outstanding": str(result.outstanding),
        "attempt_state": result.attempt_state,
    }


class PaymentVerifyView(APIView):
    permission_classes = [IsAuthenticated]
    parser_classes = [JSONParser]
    throttle_classes = [VerifyThrottle]

    @extend_schema(
        tags=["Billing"],
        request=PaymentProofSerializer,
        responses={
            200: ReconcileResponseSerializer,
            400: OpenApiResponse(description="Invalid signature"),
            403: OpenApiResponse(description="Attempt belongs to another payer"),
            404: OpenApiResponse(description="Unknown order"),
            500: OpenApiResponse(description="Payment gateway not configured"),
        },
    )
    def post(self, request, *args, **kwargs):
        s = PaymentProofSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            result = verification.verify_client_proof(
                order_id=data["order_id"],
                payment_id=data["payment_id"],
                signature=data["signature"],
                user=request.user,
            )
        except BillingError as exc:
            return billing_error_response(exc)

        return Response(_result_payload(result), status=status.HTTP_200_OK)


class PaymentPollView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_classes = [VerifyThrottle]

    @extend_schema(
        tags=["Billing"],
        request=None,
        responses={
            200: PollResponseSerializer,
            403: OpenApiResponse(description="Not the payer"),
            500: OpenApiResponse(description="Payment gateway not configured"),
        },
        description="Fallback when neither the webhook nor the checkout callback arrived.",
    )
    def post(self, request, attempt_id, *args, **kwargs):
        try:
            attempt = verification.get_attempt(attempt_id)
        except AttemptNotFound:
            return Response(
                {"verified": False, "order_status": "", "detail": "Unknown payment attempt"},
                status=status.HTTP_200_OK,
            )

        if attempt.payer_id != request.user.pk and not is_billing_admin(request.user):
            return Response(
                {"detail": "You are not allowed to verify this payment."},
                status=status.HTTP_403_FORBIDDEN,
            )

        if not attempt.gateway_order_id:
            return Response(
                {"detail": "Only gateway payments can be polled."},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            gateway = None if attempt.is_terminal else get_gateway()
            outcome = verification.poll_attempt(attempt, gateway)
        except BillingError as exc:
            return billing_error_response(exc)

        payload = {
            "verified": outcome.verified,
            "order_status": outcome.order_status,
            "detail": outcome.detail,
        }
        if outcome.result is not None:
            payload.update(_result_payload(outcome.result))
        return Response(payload, status=status.HTTP_200_OK)
