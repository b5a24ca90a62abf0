# billing/views/errors.py

"""
Maps billing domain errors to HTTP responses.

Gateway configuration problems never echo the underlying message so no
secret material can leak into a response body.
"""

import logging

from rest_framework import status
from rest_framework.response import Response

from billing.services.exceptions import (
    AlreadySettled,
    AttemptNotFound,
    BillingError,
    GatewayError,
    GatewayUnavailable,
    InvalidAmount,
    LedgerEntryLocked,
    LedgerEntryNotFound,
    SignatureMismatch,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = [
    (InvalidAmount, status.HTTP_400_BAD_REQUEST),
    (AlreadySettled, status.HTTP_400_BAD_REQUEST),
    (LedgerEntryLocked, status.HTTP_400_BAD_REQUEST),
    (SignatureMismatch, status.HTTP_400_BAD_REQUEST),
    (AttemptNotFound, status.HTTP_404_NOT_FOUND),
    (LedgerEntryNotFound, status.HTTP_404_NOT_FOUND),
    (GatewayError, status.HTTP_502_BAD_GATEWAY),
    (GatewayUnavailable, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def billing_error_response(exc: BillingError) -> Response:
    for error_cls, http_status in _STATUS_BY_ERROR:
        if isinstance(exc, error_cls):
            break
    else:
        http_status = status.HTTP_400_BAD_REQUEST

    if isinstance(exc, GatewayUnavailable):
        logger.error("Payment gateway not configured")
        return Response({"detail": "Payment gateway is not configured"}, status=http_status)

    if isinstance(exc, GatewayError):
        logger.warning("Payment gateway error", extra={"error": str(exc)})
        return Response({"detail": "Payment gateway request failed"}, status=http_status)

    return Response({"detail": str(exc)}, status=http_status)
