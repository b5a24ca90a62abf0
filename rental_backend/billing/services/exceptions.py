# billing/services/exceptions.py

"""
BILLING SERVICE ERRORS

Centralized domain errors for the ledger, order and reconciliation services.
Views translate these into HTTP responses; services never build responses.
"""


class BillingError(Exception):
    """Base exception for all billing service failures."""


class InvalidAmount(BillingError):
    """Raised when a payment amount is zero, negative or unparseable."""


class AlreadySettled(BillingError):
    """Raised when an order is requested for an entry with nothing outstanding."""


class LedgerEntryLocked(BillingError):
    """Raised when the owed amount is edited after payment attempts exist."""


class GatewayUnavailable(BillingError):
    """Raised when the payment gateway has no credentials configured."""


class GatewayError(BillingError):
    """Raised when the payment gateway rejects or fails a request."""


class SignatureMismatch(BillingError):
    """Raised when a webhook or client payment proof fails HMAC verification."""


class AttemptNotFound(BillingError):
    """Raised when no payment attempt matches a gateway order or attempt id."""


class LedgerEntryNotFound(BillingError):
    """Raised when an invoice or rent period does not exist."""
