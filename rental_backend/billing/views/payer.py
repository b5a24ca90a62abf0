# billing/views/payer.py

"""
PAYER BILLING API (residents & tenants)

- GET  /api/billing/my/invoices/              invoices of units the caller lives in
- GET  /api/billing/my/invoices/<id>/         one of those invoices + its payments
- POST /api/billing/invoices/<id>/orders/     open a gateway order for an invoice
- GET  /api/billing/my/rent/next-due/         earliest unpaid rent period
- GET  /api/billing/my/rent/history/          ?filter=last5|lastMonth (default: current year)
- GET  /api/billing/my/rent/statistics/       current-year totals
- POST /api/billing/rent/<id>/orders/         open a gateway order for a rent period

The returned order_id + key_id are what the checkout widget needs; the
payment is confirmed later through verify / poll / webhook.
"""

from __future__ import annotations

import logging

from django.utils import timezone
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, OpenApiTypes, extend_schema
from rest_framework import generics, status
from rest_framework.parsers import JSONParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from billing.models import AdHocInvoice
from billing.pagination import RentHistoryPagination
from billing.serializers import (
    AdHocInvoiceSerializer,
    NextDueResponseSerializer,
    OrderCreateSerializer,
    OrderQuoteSerializer,
    PaymentAttemptSerializer,
    RecurringPeriodSerializer,
    RentHistorySerializer,
    RentStatisticsSerializer,
    ResidentInvoiceDetailSerializer,
)
from billing.services import ledger_service, order_service, rent_reports
from billing.services.exceptions import BillingError
from billing.services.gateway import get_gateway
from billing.views.errors import billing_error_response

logger = logging.getLogger(__name__)


def _quote_payload(quote) -> dict:
    return {
        "order_id": quote.order_id,
        "amount": str(quote.amount),
        "amount_minor": quote.amount_minor,
        "currency": quote.currency,
        "attempt_id": quote.attempt_id,
        "key_id": quote.key_id,
        "entry_id": quote.entry_id,
        "entry_type": quote.entry_type,
    }


def _open_order(request, entry):
    s = OrderCreateSerializer(data=request.data or {})
    s.is_valid(raise_exception=True)

    try:
        quote = order_service.create_order(
            entry,
            request.user,
            get_gateway(),
            requested_amount=s.validated_data.get("amount"),
        )
    except BillingError as exc:
        return billing_error_response(exc)

    return Response(_quote_payload(quote), status=status.HTTP_201_CREATED)


class MyInvoicesView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["Billing"], responses={200: AdHocInvoiceSerializer(many=True)})
    def get(self, request, *args, **kwargs):
        invoices = list(
            AdHocInvoice.objects.select_related("unit")
            .filter(unit__residents=request.user)
            .order_by("-year", "-month")
        )
        paid_map = ledger_service.approved_totals_by_invoice(i.pk for i in invoices)
        data = AdHocInvoiceSerializer(invoices, many=True, context={"paid_map": paid_map}).data
        return Response(data, status=status.HTTP_200_OK)


class MyInvoiceDetailView(APIView):
    """Invoices of other units answer 404, same as missing ones."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        tags=["Billing"],
        responses={
            200: ResidentInvoiceDetailSerializer,
            403: OpenApiResponse(description="Caller is not linked to any unit"),
            404: OpenApiResponse(description="Invoice not found"),
        },
    )
    def get(self, request, invoice_id, *args, **kwargs):
        if not request.user.units.exists():
            return Response(
                {"detail": "No units linked to this account."}, status=status.HTTP_403_FORBIDDEN
            )

        try:
            invoice = ledger_service.get_invoice(invoice_id)
        except BillingError as exc:
            return billing_error_response(exc)

        if not invoice.payer_may_pay(request.user):
            return Response({"detail": "Invoice not found."}, status=status.HTTP_404_NOT_FOUND)

        totals = ledger_service.totals_for(invoice)
        payments = invoice.payment_attempts.order_by("-created_at")
        return Response(
            {
                "invoice": AdHocInvoiceSerializer(
                    invoice, context={"paid_map": {invoice.pk: totals.total_paid}}
                ).data,
                "payments": PaymentAttemptSerializer(payments, many=True).data,
                "total_paid": str(totals.total_paid),
                "outstanding": str(totals.outstanding),
            },
            status=status.HTTP_200_OK,
        )


class InvoiceOrderView(APIView):
    permission_classes = [IsAuthenticated]
    parser_classes = [JSONParser]

    @extend_schema(
        tags=["Billing"],
        request=OrderCreateSerializer,
        responses={
            201: OrderQuoteSerializer,
            400: OpenApiResponse(description="Invalid amount or already settled"),
            403: OpenApiResponse(description="Not a resident of this unit"),
            404: OpenApiResponse(description="Invoice not found"),
            500: OpenApiResponse(description="Payment gateway not configured"),
            502: OpenApiResponse(description="Payment gateway error"),
        },
    )
    def post(self, request, invoice_id, *args, **kwargs):
        try:
            invoice = ledger_service.get_invoice(invoice_id)
        except BillingError as exc:
            return billing_error_response(exc)

        if not invoice.payer_may_pay(request.user):
            return Response(
                {"detail": "You are not allowed to pay this invoice."},
                status=status.HTTP_403_FORBIDDEN,
            )
        return _open_order(request, invoice)


class NextDueRentView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        tags=["Billing"],
        responses={
            200: NextDueResponseSerializer,
            404: OpenApiResponse(description="No tenant profile"),
        },
        description="Earliest unpaid rent period, with the late fee as of now.",
    )
    def get(self, request, *args, **kwargs):
        profile, totals = ledger_service.next_due_period(request.user)
        if profile is None:
            return Response(
                {"detail": "No active tenant profile."}, status=status.HTTP_404_NOT_FOUND
            )

        if totals is None:
            return Response(
                {"period": None, "total_paid": "0.00", "outstanding": "0.00"},
                status=status.HTTP_200_OK,
            )

        return Response(
            {
                "period": RecurringPeriodSerializer(totals.entry).data,
                "total_paid": str(totals.total_paid),
                "outstanding": str(totals.outstanding),
            },
            status=status.HTTP_200_OK,
        )


class RentOrderView(APIView):
    permission_classes = [IsAuthenticated]
    parser_classes = [JSONParser]

    @extend_schema(
        tags=["Billing"],
        request=OrderCreateSerializer,
        responses={
            201: OrderQuoteSerializer,
            400: OpenApiResponse(description="Invalid amount or already settled"),
            403: OpenApiResponse(description="Not this tenant's period"),
            404: OpenApiResponse(description="Rent period not found"),
            500: OpenApiResponse(description="Payment gateway not configured"),
            502: OpenApiResponse(description="Payment gateway error"),
        },
    )
    def post(self, request, period_id, *args, **kwargs):
        try:
            period = ledger_service.get_period(period_id)
        except BillingError as exc:
            return billing_error_response(exc)

        if not period.payer_may_pay(request.user):
            return Response(
                {"detail": "You are not allowed to pay this rent period."},
                status=status.HTTP_403_FORBIDDEN,
            )
        return _open_order(request, period)



class MyRentHistoryView(generics.ListAPIView):
    """
    Rent periods of the calling tenant, newest first.

    - filter=last5      latest five periods, unpaginated
    - filter=lastMonth  the previous calendar month
    - anything else     the current year, paginated (?page, ?limit)
    """

    permission_classes = [IsAuthenticated]
    serializer_class = RentHistorySerializer
    pagination_class = RentHistoryPagination

    def get_filter_key(self) -> str:
        return rent_reports.history_filter(self.request.query_params.get("filter"))

    def get_queryset(self):
        return rent_reports.tenant_history(
            self.request.user, self.get_filter_key(), today=timezone.localdate()
        )

    @extend_schema(
        tags=["Billing"],
        parameters=[
            OpenApiParameter(
                name="filter",
                type=OpenApiTypes.STR,
                location=OpenApiParameter.QUERY,
                enum=list(rent_reports.HISTORY_FILTERS),
                required=False,
            ),
        ],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def list(self, request, *args, **kwargs):
        filter_key = self.get_filter_key()
        queryset = self.get_queryset()

        if filter_key == rent_reports.HISTORY_LAST5:
            results = self.get_serializer(queryset, many=True).data
            return Response(
                {
                    "count": len(results),
                    "next": None,
                    "previous": None,
                    "results": results,
                    "filter": filter_key,
                },
                status=status.HTTP_200_OK,
            )

        page = self.paginate_queryset(queryset)
        response = self.get_paginated_response(self.get_serializer(page, many=True).data)
        response.data["filter"] = filter_key
        return response


class MyRentStatisticsView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["Billing"], responses={200: RentStatisticsSerializer})
    def get(self, request, *args, **kwargs):
        stats = rent_reports.tenant_statistics(request.user, year=timezone.localdate().year)
        return Response(stats, status=status.HTTP_200_OK)
