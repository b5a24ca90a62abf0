# billing/views/owner.py

"""
OWNER COLLECTIONS API

- GET /api/billing/owner/rent/history/    rent periods of owned units + summary
- GET /api/billing/owner/rent/summary/    summary only

Query params (both): property, tenant, status, date_from, date_to
date_from / date_to match periods due OR paid inside the window.

Security:
- IsOwnerOrAdmin; owners are scoped to units they own, admins see every unit
"""

from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import generics, status
from rest_framework.response import Response

from billing.filters import RecurringPeriodFilter
from billing.pagination import RentHistoryPagination
from billing.serializers import CollectionSummarySerializer, OwnerRentHistorySerializer
from billing.services import rent_reports
from users.permissions import IsOwnerOrAdmin


class _OwnerPeriodsMixin:
    permission_classes = [IsOwnerOrAdmin]
    filterset_class = RecurringPeriodFilter

    def get_queryset(self):
        return rent_reports.owner_periods(self.request.user)


class OwnerRentHistoryView(_OwnerPeriodsMixin, generics.ListAPIView):
    serializer_class = OwnerRentHistorySerializer
    pagination_class = RentHistoryPagination

    @extend_schema(tags=["Billing (Owner)"])
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def list(self, request, *args, **kwargs):
        queryset = self.filter_queryset(self.get_queryset())
        summary = rent_reports.collection_summary(queryset)

        page = self.paginate_queryset(queryset)
        response = self.get_paginated_response(self.get_serializer(page, many=True).data)
        response.data["summary"] = summary
        return response


class OwnerRentSummaryView(_OwnerPeriodsMixin, generics.GenericAPIView):
    serializer_class = CollectionSummarySerializer

    @extend_schema(tags=["Billing (Owner)"], responses={200: CollectionSummarySerializer})
    def get(self, request, *args, **kwargs):
        queryset = self.filter_queryset(self.get_queryset())
        return Response(rent_reports.collection_summary(queryset), status=status.HTTP_200_OK)
