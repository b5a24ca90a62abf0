# billing/urls.py
"""
BILLING API URLS

Base path (mounted in backend/urls.py):
    /api/billing/

Admin:
- POST  invoices/generate/
- GET   invoices/
- GET   invoices/<id>/      PATCH invoices/<id>/
- POST  invoices/<id>/payments/
- GET   summary/

Owners (and admins):
- GET   owner/rent/history/
- GET   owner/rent/summary/

Residents / tenants:
- GET   my/invoices/
- GET   my/invoices/<id>/
- POST  invoices/<id>/orders/
- GET   my/rent/next-due/
- GET   my/rent/history/
- GET   my/rent/statistics/
- POST  rent/<id>/orders/

Reconciliation:
- POST  payments/verify/
- POST  payments/<attempt_id>/poll/
- POST  webhooks/gateway/   (AllowAny, signature-checked)
"""

from __future__ import annotations

from django.urls import path

from billing.views import (
    GatewayWebhookView,
    InvoiceDetailView,
    InvoiceGenerateView,
    InvoiceListView,
    InvoiceOrderView,
    InvoicePaymentView,
    InvoiceSummaryView,
    MyInvoiceDetailView,
    MyInvoicesView,
    MyRentHistoryView,
    MyRentStatisticsView,
    NextDueRentView,
    OwnerRentHistoryView,
    OwnerRentSummaryView,
    PaymentPollView,
    PaymentVerifyView,
    RentOrderView,
)

app_name = "billing"

urlpatterns = [
    # Admin
    path("invoices/generate/", InvoiceGenerateView.as_view(), name="invoice-generate"),
    path("invoices/", InvoiceListView.as_view(), name="invoice-list"),
    path("invoices/<uuid:invoice_id>/", InvoiceDetailView.as_view(), name="invoice-detail"),
    path(
        "invoices/<uuid:invoice_id>/payments/",
        InvoicePaymentView.as_view(),
        name="invoice-payments",
    ),
    path("summary/", InvoiceSummaryView.as_view(), name="summary"),
    # Owners
    path("owner/rent/history/", OwnerRentHistoryView.as_view(), name="owner-rent-history"),
    path("owner/rent/summary/", OwnerRentSummaryView.as_view(), name="owner-rent-summary"),
    # Residents / tenants
    path("my/invoices/", MyInvoicesView.as_view(), name="my-invoices"),
    path("my/invoices/<uuid:invoice_id>/", MyInvoiceDetailView.as_view(), name="my-invoice-detail"),
    path("invoices/<uuid:invoice_id>/orders/", InvoiceOrderView.as_view(), name="invoice-order"),
    path("my/rent/next-due/", NextDueRentView.as_view(), name="rent-next-due"),
    path("my/rent/history/", MyRentHistoryView.as_view(), name="rent-history"),
    path("my/rent/statistics/", MyRentStatisticsView.as_view(), name="rent-statistics"),
    path("rent/<uuid:period_id>/orders/", RentOrderView.as_view(), name="rent-order"),
    # Reconciliation
    path("payments/verify/", PaymentVerifyView.as_view(), name="payment-verify"),
    path("payments/<uuid:attempt_id>/poll/", PaymentPollView.as_view(), name="payment-poll"),
    path("webhooks/gateway/", GatewayWebhookView.as_view(), name="gateway-webhook"),
]
