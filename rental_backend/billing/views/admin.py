# billing/views/admin.py

"""
ADMIN BILLING API

- POST  /api/billing/invoices/generate/          bulk-create monthly invoices
- GET   /api/billing/invoices/                   list with paid/outstanding
- GET   /api/billing/invoices/<id>/              detail + payment attempts
- PATCH /api/billing/invoices/<id>/              amount / due_date / notes
- POST  /api/billing/invoices/<id>/payments/     record an offline payment
- GET   /api/billing/summary/                    totals across invoices

Security:
- IsAdmin (role=admin or superuser) on every endpoint
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import generics, status
from rest_framework.parsers import JSONParser
from rest_framework.response import Response
from rest_framework.views import APIView

from billing.filters import AdHocInvoiceFilter
from billing.models import AdHocInvoice
from billing.serializers import (
    AdHocInvoiceDetailSerializer,
    AdHocInvoiceSerializer,
    InvoiceGenerateResponseSerializer,
    InvoiceGenerateSerializer,
    InvoiceUpdateSerializer,
    LedgerTotalsResponseSerializer,
    ManualPaymentSerializer,
    PaymentAttemptSerializer,
    SummaryQuerySerializer,
    SummaryResponseSerializer,
)
from billing.services import ledger_service
from billing.services.exceptions import BillingError
from billing.views.errors import billing_error_response
from users.permissions import IsAdmin

logger = logging.getLogger(__name__)


def _totals_payload(totals) -> dict:
    paid_map = {totals.entry.pk: totals.total_paid}
    return {
        "invoice": AdHocInvoiceSerializer(totals.entry, context={"paid_map": paid_map}).data,
        "total_paid": str(totals.total_paid),
        "outstanding": str(totals.outstanding),
    }


class InvoiceGenerateView(APIView):
    permission_classes = [IsAdmin]
    parser_classes = [JSONParser]

    @extend_schema(
        tags=["Billing (Admin)"],
        request=InvoiceGenerateSerializer,
        responses={
            200: InvoiceGenerateResponseSerializer,
            400: OpenApiResponse(description="Validation error"),
        },
        description="Create one invoice per unit for a month. Existing invoices are skipped.",
    )
    def post(self, request, *args, **kwargs):
        s = InvoiceGenerateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            result = ledger_service.generate_invoices(
                month=data["month"],
                year=data["year"],
                amount=data["amount"],
                due_date=data.get("due_date"),
                unit_ids=data.get("property_ids") or None,
            )
        except BillingError as exc:
            return billing_error_response(exc)

        return Response(result, status=status.HTTP_200_OK)


class InvoiceListView(generics.ListAPIView):
    permission_classes = [IsAdmin]
    serializer_class = AdHocInvoiceSerializer
    filterset_class = AdHocInvoiceFilter
    queryset = AdHocInvoice.objects.select_related("unit").order_by("-created_at")

    @extend_schema(tags=["Billing (Admin)"])
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_serializer(self, *args, **kwargs):
        if args and kwargs.get("many"):
            invoices = list(args[0])
            paid_map = ledger_service.approved_totals_by_invoice(i.pk for i in invoices)
            kwargs["context"] = {**self.get_serializer_context(), "paid_map": paid_map}
            return self.get_serializer_class()(invoices, *args[1:], **kwargs)
        return super().get_serializer(*args, **kwargs)


class InvoiceDetailView(APIView):
    permission_classes = [IsAdmin]
    parser_classes = [JSONParser]

    @extend_schema(
        tags=["Billing (Admin)"],
        responses={200: AdHocInvoiceDetailSerializer, 404: OpenApiResponse(description="Not found")},
    )
    def get(self, request, invoice_id, *args, **kwargs):
        try:
            invoice = ledger_service.get_invoice(invoice_id)
        except BillingError as exc:
            return billing_error_response(exc)

        totals = ledger_service.totals_for(invoice)
        data = AdHocInvoiceDetailSerializer(
            invoice, context={"paid_map": {invoice.pk: totals.total_paid}}
        ).data
        return Response(data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["Billing (Admin)"],
        request=InvoiceUpdateSerializer,
        responses={
            200: LedgerTotalsResponseSerializer,
            400: OpenApiResponse(description="Validation error or amount locked"),
            404: OpenApiResponse(description="Not found"),
        },
    )
    def patch(self, request, invoice_id, *args, **kwargs):
        s = InvoiceUpdateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            invoice = ledger_service.get_invoice(invoice_id)
            totals = ledger_service.update_invoice(
                invoice=invoice,
                amount=data.get("amount"),
                due_date=data.get("due_date"),
                notes=data.get("notes"),
            )
        except BillingError as exc:
            return billing_error_response(exc)

        return Response(_totals_payload(totals), status=status.HTTP_200_OK)


class InvoicePaymentView(APIView):
    permission_classes = [IsAdmin]
    parser_classes = [JSONParser]

    @extend_schema(
        tags=["Billing (Admin)"],
        request=ManualPaymentSerializer,
        responses={
            201: LedgerTotalsResponseSerializer,
            400: OpenApiResponse(description="Validation error"),
            404: OpenApiResponse(description="Not found"),
        },
        description="Record a cash/cheque/transfer payment. It is approved immediately.",
    )
    def post(self, request, invoice_id, *args, **kwargs):
        s = ManualPaymentSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            invoice = ledger_service.get_invoice(invoice_id)
            attempt, totals = ledger_service.record_manual_payment(
                invoice=invoice,
                recorded_by=request.user,
                amount=data["amount"],
                method=data["method"],
                reference=data.get("reference") or "",
                paid_at=data.get("paid_at"),
            )
        except BillingError as exc:
            return billing_error_response(exc)

        payload = _totals_payload(totals)
        payload["payment"] = PaymentAttemptSerializer(attempt).data
        return Response(payload, status=status.HTTP_201_CREATED)


class InvoiceSummaryView(APIView):
    permission_classes = [IsAdmin]

    @extend_schema(
        tags=["Billing (Admin)"],
        parameters=[SummaryQuerySerializer],
        responses={200: SummaryResponseSerializer},
    )
    def get(self, request, *args, **kwargs):
        q = SummaryQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)

        summary = ledger_service.invoice_summary(
            month=q.validated_data.get("month"),
            year=q.validated_data.get("year"),
        )
        return Response(SummaryResponseSerializer(summary).data, status=status.HTTP_200_OK)
