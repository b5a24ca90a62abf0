from .admin import (
    InvoiceDetailView,
    InvoiceGenerateView,
    InvoiceListView,
    InvoicePaymentView,
    InvoiceSummaryView,
)
from .owner import OwnerRentHistoryView, OwnerRentSummaryView
from .payer import (
    InvoiceOrderView,
    MyInvoiceDetailView,
    MyInvoicesView,
    MyRentHistoryView,
    MyRentStatisticsView,
    NextDueRentView,
    RentOrderView,
)
from .verification import PaymentPollView, PaymentVerifyView
from .webhook import GatewayWebhookView

__all__ = [
    "InvoiceGenerateView",
    "InvoiceListView",
    "InvoiceDetailView",
    "InvoicePaymentView",
    "InvoiceSummaryView",
    "OwnerRentHistoryView",
    "OwnerRentSummaryView",
    "MyInvoicesView",
    "MyInvoiceDetailView",
    "InvoiceOrderView",
    "NextDueRentView",
    "MyRentHistoryView",
    "MyRentStatisticsView",
    "RentOrderView",
    "PaymentVerifyView",
    "PaymentPollView",
    "GatewayWebhookView",
]
