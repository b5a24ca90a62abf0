from .base import LedgerEntry
from .invoice import AdHocInvoice
from .payment_attempt import PaymentAttempt
from .rent_period import RecurringPeriod

__all__ = ["LedgerEntry", "AdHocInvoice", "RecurringPeriod", "PaymentAttempt"]
