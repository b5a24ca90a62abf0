# billing/tests/test_reports.py

from __future__ import annotations

import uuid
from datetime import date, datetime
from datetime import timezone as dt_timezone
from decimal import Decimal
from unittest import mock

from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from billing.models import PaymentAttempt, RecurringPeriod
from billing.services import ledger_service
from billing.tests.helpers import make_admin, make_invoice, make_unit, make_user
from properties.models import TenantProfile
from users.models import User

TODAY = date(2025, 6, 15)


def _utc(*args) -> datetime:
    return datetime(*args, tzinfo=dt_timezone.utc)


def _pay(period: RecurringPeriod, paid_at: datetime, document_ref: str = "") -> PaymentAttempt:
    attempt = PaymentAttempt.objects.create(
        period=period,
        payer=period.tenant,
        amount=period.total_amount,
        state=PaymentAttempt.STATE_APPROVED,
        paid_at=paid_at,
        document_ref=document_ref,
    )
    ledger_service.recalc_ledger_entry(period)
    return attempt


def _on(today: date):
    return mock.patch("django.utils.timezone.localdate", return_value=today)


class _RentLedgerBase(TestCase):
    """
    Tenant in unit PG-1 (owned by owner@), rent 10000, moved in 2024-11-02.

    Periods Nov 2024 .. Jun 2025. Nov, Dec, Jan and Feb are paid; Jan carried
    a 150.00 late fee and was paid on 2025-03-10.
    """

    def setUp(self):
        self.client = APIClient()
        self.owner = make_user("owner@example.com", role=User.ROLE_OWNER)
        self.tenant = make_user("tenant@example.com", role=User.ROLE_TENANT, phone="+91 90000 00000")
        self.unit = make_unit("PG-1", owner=self.owner)
        self.profile = TenantProfile.objects.create(
            tenant=self.tenant,
            property=self.unit,
            monthly_rent=Decimal("10000.00"),
            move_in_date=date(2024, 11, 2),
        )
        for year, month in [(2024, 12), (2025, 1), (2025, 2), (2025, 3), (2025, 4), (2025, 5), (2025, 6)]:
            ledger_service.generate_recurring_period(self.profile, year, month)

        self.periods = {
            (p.period_year, p.period_month): p for p in RecurringPeriod.objects.filter(tenant=self.tenant)
        }
        january = self.periods[(2025, 1)]
        january.late_fee_amount = Decimal("150.00")
        january.save(update_fields=["late_fee_amount", "updated_at"])

        _pay(self.periods[(2024, 11)], _utc(2024, 11, 2, 10))
        _pay(self.periods[(2024, 12)], _utc(2024, 12, 3, 10))
        _pay(january, _utc(2025, 3, 10, 10), document_ref="INV-2025-000001")
        _pay(self.periods[(2025, 2)], _utc(2025, 2, 4, 10))

        # Someone else's tenant in someone else's unit
        other_owner = make_user("other-owner@example.com", role=User.ROLE_OWNER)
        self.other_tenant = make_user("other-tenant@example.com", role=User.ROLE_TENANT)
        self.other_unit = make_unit("PG-9", owner=other_owner)
        TenantProfile.objects.create(
            tenant=self.other_tenant,
            property=self.other_unit,
            monthly_rent=Decimal("8000.00"),
            move_in_date=date(2025, 3, 1),
        )


class TenantRentHistoryTests(_RentLedgerBase):
    def setUp(self):
        super().setUp()
        self.url = reverse("billing:rent-history")
        self.client.force_authenticate(user=self.tenant)

    def _months(self, res):
        return [(row["period_year"], row["period_month"]) for row in res.data["results"]]

    def test_defaults_to_current_year_newest_first(self):
        with _on(TODAY):
            res = self.client.get(self.url)

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["filter"], "currentYear")
        self.assertEqual(res.data["count"], 6)
        self.assertEqual(
            self._months(res),
            [(2025, 6), (2025, 5), (2025, 4), (2025, 3), (2025, 2), (2025, 1)],
        )

    def test_paginates_with_limit(self):
        with _on(TODAY):
            first = self.client.get(self.url, {"limit": 2})
            third = self.client.get(self.url, {"limit": 2, "page": 3})

        self.assertEqual(first.data["count"], 6)
        self.assertEqual(len(first.data["results"]), 2)
        self.assertIsNotNone(first.data["next"])
        self.assertEqual(self._months(third), [(2025, 2), (2025, 1)])
        self.assertIsNone(third.data["next"])

    def test_last5_ignores_year_and_pagination(self):
        with _on(TODAY):
            res = self.client.get(self.url, {"filter": "last5", "limit": 2})

        self.assertEqual(res.data["filter"], "last5")
        self.assertEqual(res.data["count"], 5)
        self.assertIsNone(res.data["next"])
        self.assertEqual(
            self._months(res),
            [(2025, 6), (2025, 5), (2025, 4), (2025, 3), (2025, 2)],
        )

    def test_last_month(self):
        with _on(TODAY):
            res = self.client.get(self.url, {"filter": "lastMonth"})
        self.assertEqual(self._months(res), [(2025, 5)])

        with _on(date(2025, 1, 20)):
            res = self.client.get(self.url, {"filter": "lastMonth"})
        self.assertEqual(self._months(res), [(2024, 12)])

    def test_rows_carry_settlement_details(self):
        with _on(TODAY):
            res = self.client.get(self.url)

        january = res.data["results"][-1]
        self.assertEqual(january["period_label"], "Jan 2025")
        self.assertEqual(january["status"], RecurringPeriod.STATUS_PAID)
        self.assertEqual(january["total_amount"], "10150.00")
        self.assertEqual(january["document_ref"], "INV-2025-000001")
        self.assertIsNotNone(january["paid_at"])
        self.assertEqual(january["property_label"], "PG-1")

        june = res.data["results"][0]
        self.assertIsNone(june["paid_at"])

    def test_only_own_periods(self):
        self.client.force_authenticate(user=self.other_tenant)
        with _on(TODAY):
            res = self.client.get(self.url)
        self.assertEqual(res.data["count"], 1)
        self.assertEqual(self._months(res), [(2025, 3)])

    def test_anonymous_is_rejected(self):
        self.client.force_authenticate(user=None)
        res = self.client.get(self.url)
        self.assertEqual(res.status_code, status.HTTP_401_UNAUTHORIZED)


class TenantRentStatisticsTests(_RentLedgerBase):
    def test_current_year_totals(self):
        self.client.force_authenticate(user=self.tenant)
        with _on(TODAY):
            res = self.client.get(reverse("billing:rent-statistics"))

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        data = res.data
        self.assertEqual(data["year"], 2025)
        self.assertEqual(data["total_periods"], 6)
        self.assertEqual(data["paid_count"], 2)
        self.assertEqual(data["pending_count"], 4)
        self.assertEqual(data["total_paid"], "20150.00")
        self.assertEqual(data["total_pending"], "40000.00")
        self.assertEqual(data["total_late_fees"], "150.00")
        self.assertEqual([m["month"] for m in data["months_paid"]], [1, 2])
        self.assertEqual([m["month"] for m in data["months_pending"]], [3, 4, 5, 6])
        self.assertEqual(data["months_paid"][0]["label"], "Jan 2025")

    def test_no_periods(self):
        self.client.force_authenticate(user=make_user("nobody@example.com", role=User.ROLE_TENANT))
        with _on(TODAY):
            res = self.client.get(reverse("billing:rent-statistics"))

        self.assertEqual(res.data["total_periods"], 0)
        self.assertEqual(res.data["total_paid"], "0.00")
        self.assertEqual(res.data["months_pending"], [])


class OwnerCollectionsTests(_RentLedgerBase):
    """
    GUARANTEES:
    - Owners see only periods of units they own
    - The summary covers every filtered row, not just the current page
    """

    def setUp(self):
        super().setUp()
        self.history_url = reverse("billing:owner-rent-history")
        self.summary_url = reverse("billing:owner-rent-summary")
        self.client.force_authenticate(user=self.owner)

    def test_history_is_scoped_to_owned_units(self):
        res = self.client.get(self.history_url, {"limit": 3})

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["count"], 8)
        self.assertEqual(len(res.data["results"]), 3)
        self.assertEqual(
            res.data["summary"],
            {
                "total_due": "80150.00",
                "total_received": "40150.00",
                "total_pending": "40000.00",
                "total_count": 8,
            },
        )
        row = res.data["results"][0]
        self.assertEqual(row["tenant"]["email"], "tenant@example.com")
        self.assertEqual(row["tenant"]["phone"], "+91 90000 00000")
        self.assertEqual(row["property"], str(self.unit.pk))

    def test_filters(self):
        paid = self.client.get(self.history_url, {"status": RecurringPeriod.STATUS_PAID})
        self.assertEqual(paid.data["count"], 4)
        self.assertEqual(paid.data["summary"]["total_pending"], "0.00")

        other_unit = self.client.get(self.history_url, {"property": str(self.other_unit.pk)})
        self.assertEqual(other_unit.data["count"], 0)

        by_tenant = self.client.get(self.history_url, {"tenant": str(self.tenant.pk)})
        self.assertEqual(by_tenant.data["count"], 8)

    def test_window_matches_due_or_paid(self):
        res = self.client.get(self.history_url, {"date_from": "2025-03-01", "date_to": "2025-04-30"})

        months = sorted((r["period_year"], r["period_month"]) for r in res.data["results"])
        # March and April fall due in the window; January was paid on 2025-03-10
        self.assertEqual(months, [(2025, 1), (2025, 3), (2025, 4)])

    def test_open_ended_window(self):
        res = self.client.get(self.history_url, {"date_from": "2025-05-01"})
        months = sorted((r["period_year"], r["period_month"]) for r in res.data["results"])
        self.assertEqual(months, [(2025, 5), (2025, 6)])

    def test_summary_endpoint(self):
        res = self.client.get(self.summary_url)
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["total_count"], 8)
        self.assertEqual(res.data["total_received"], "40150.00")

        res = self.client.get(self.summary_url, {"tenant": str(self.other_tenant.pk)})
        self.assertEqual(res.data["total_count"], 0)

    def test_admin_sees_every_unit(self):
        self.client.force_authenticate(user=make_admin())
        res = self.client.get(self.summary_url)
        self.assertEqual(res.data["total_count"], 9)

    def test_tenants_and_residents_are_forbidden(self):
        self.client.force_authenticate(user=self.tenant)
        self.assertEqual(self.client.get(self.history_url).status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(self.client.get(self.summary_url).status_code, status.HTTP_403_FORBIDDEN)


class ResidentInvoiceDetailTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.admin = make_admin()
        self.resident = make_user("resident@example.com")
        self.unit = make_unit(residents=[self.resident])
        self.invoice = make_invoice(self.unit, amount="1000.00", due_date=date(2099, 1, 10))
        ledger_service.record_manual_payment(
            invoice=self.invoice,
            recorded_by=self.admin,
            amount="400",
            method=PaymentAttempt.METHOD_CASH,
            reference="R-1",
        )
        self.client.force_authenticate(user=self.resident)

    def _url(self, invoice_id):
        return reverse("billing:my-invoice-detail", kwargs={"invoice_id": invoice_id})

    def test_own_invoice_with_payments(self):
        res = self.client.get(self._url(self.invoice.pk))

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["invoice"]["id"], str(self.invoice.pk))
        self.assertEqual(res.data["total_paid"], "400.00")
        self.assertEqual(res.data["outstanding"], "600.00")
        self.assertEqual(len(res.data["payments"]), 1)
        self.assertEqual(res.data["payments"][0]["reference"], "R-1")

    def test_invoice_of_another_unit_is_404(self):
        neighbour = make_unit("B-202", residents=[make_user("neighbour@example.com")])
        theirs = make_invoice(neighbour, amount="500.00")

        res = self.client.get(self._url(theirs.pk))
        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)

        res = self.client.get(self._url(uuid.uuid4()))
        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)

    def test_user_without_units_is_403(self):
        self.client.force_authenticate(user=make_user("drifter@example.com"))
        res = self.client.get(self._url(self.invoice.pk))
        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)
