# billing/tests/test_orders.py

from __future__ import annotations

from datetime import date, datetime
from datetime import timezone as dt_timezone
from decimal import Decimal

from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from billing.models import AdHocInvoice, PaymentAttempt, RecurringPeriod
from billing.services import ledger_service, order_service
from billing.services.exceptions import AlreadySettled, GatewayError, GatewayUnavailable
from billing.tests.helpers import FakeGateway, make_admin, make_invoice, make_unit, make_user, use_gateway
from properties.models import TenantProfile
from users.models import User


def _utc(*args) -> datetime:
    return datetime(*args, tzinfo=dt_timezone.utc)


class InvoiceOrderApiTests(TestCase):
    """
    GUARANTEES:
    - An order is opened only for what is still outstanding
    - The attempt is PENDING and the invoice status is untouched
    - Gateway failure leaves no attempt behind
    """

    def setUp(self):
        self.client = APIClient()
        self.gateway = FakeGateway()
        self.resident = make_user("resident@example.com")
        self.stranger = make_user("stranger@example.com")
        self.unit = make_unit(residents=[self.resident])
        self.invoice = make_invoice(self.unit, amount="1000.00", due_date=date(2099, 1, 10))
        self.url = reverse("billing:invoice-order", kwargs={"invoice_id": self.invoice.pk})
        self.client.force_authenticate(user=self.resident)

    def test_resident_opens_order_for_outstanding(self):
        with use_gateway(self.gateway):
            res = self.client.post(self.url, {}, format="json")

        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        self.assertEqual(res.data["amount"], "1000.00")
        self.assertEqual(res.data["amount_minor"], 100000)
        self.assertEqual(res.data["key_id"], "rzp_test_key")
        self.assertEqual(res.data["entry_type"], "invoice")

        attempt = PaymentAttempt.objects.get(gateway_order_id=res.data["order_id"])
        self.assertEqual(attempt.state, PaymentAttempt.STATE_PENDING)
        self.assertEqual(attempt.source, PaymentAttempt.SOURCE_GATEWAY)
        self.assertEqual(attempt.payer, self.resident)

        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, AdHocInvoice.STATUS_PENDING)

        sent = self.gateway.created[0]
        self.assertEqual(sent["receipt"], f"invoice_{self.invoice.pk.hex}")
        self.assertLessEqual(len(sent["receipt"]), 40)
        self.assertEqual(sent["notes"]["entry_id"], str(self.invoice.pk))

    def test_requested_amount_is_capped_at_outstanding(self):
        admin = make_admin()
        ledger_service.record_manual_payment(
            invoice=self.invoice, recorded_by=admin, amount="600", method=PaymentAttempt.METHOD_CASH
        )

        with use_gateway(self.gateway):
            partial = self.client.post(self.url, {"amount": "150.00"}, format="json")
            capped = self.client.post(self.url, {"amount": "5000.00"}, format="json")

        self.assertEqual(partial.data["amount"], "150.00")
        self.assertEqual(capped.data["amount"], "400.00")

    def test_non_positive_amount_is_400(self):
        with use_gateway(self.gateway):
            res = self.client.post(self.url, {"amount": "0"}, format="json")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(PaymentAttempt.objects.exists())

    def test_stranger_is_forbidden(self):
        self.client.force_authenticate(user=self.stranger)
        with use_gateway(self.gateway):
            res = self.client.post(self.url, {}, format="json")
        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)

    def test_settled_invoice_is_400(self):
        ledger_service.record_manual_payment(
            invoice=self.invoice, recorded_by=make_admin(), amount="1000", method=PaymentAttempt.METHOD_CASH
        )
        with use_gateway(self.gateway):
            res = self.client.post(self.url, {}, format="json")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)

    def test_missing_gateway_is_500_without_details(self):
        with use_gateway(None):
            res = self.client.post(self.url, {}, format="json")
        self.assertEqual(res.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(res.data["detail"], "Payment gateway is not configured")

    def test_gateway_failure_leaves_no_attempt(self):
        self.gateway.fail_with = GatewayError("Gateway HTTPError: 500 secret-ish upstream text")
        with use_gateway(self.gateway):
            res = self.client.post(self.url, {}, format="json")

        self.assertEqual(res.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertNotIn("secret", res.data["detail"])
        self.assertFalse(PaymentAttempt.objects.exists())

    def test_unknown_invoice_is_404(self):
        url = reverse("billing:invoice-order", kwargs={"invoice_id": "00000000-0000-0000-0000-000000000000"})
        with use_gateway(self.gateway):
            res = self.client.post(url, {}, format="json")
        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)

    def test_my_invoices(self):
        make_invoice(make_unit("B-201"), amount="50.00")
        res = self.client.get(reverse("billing:my-invoices"))
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual([row["id"] for row in res.data], [str(self.invoice.pk)])


class RentOrderTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.gateway = FakeGateway()
        self.tenant = make_user("tenant@example.com", role=User.ROLE_TENANT)
        self.unit = make_unit("PG-1")
        TenantProfile.objects.create(
            tenant=self.tenant,
            property=self.unit,
            monthly_rent=Decimal("22000.00"),
            move_in_date=date(2025, 3, 9),
        )
        self.period = RecurringPeriod.objects.get(tenant=self.tenant)

    def test_late_fee_refreshed_before_amount_is_fixed(self):
        quote = order_service.create_order(
            self.period, self.tenant, self.gateway, now=_utc(2025, 3, 7, 12)
        )

        self.period.refresh_from_db()
        self.assertEqual(self.period.late_fee_amount, Decimal("100.00"))
        self.assertEqual(quote.amount, Decimal("16423.00"))
        self.assertEqual(quote.entry_type, "rent")
        self.assertEqual(self.period.status, RecurringPeriod.STATUS_PENDING)

    def test_gateway_required(self):
        with self.assertRaises(GatewayUnavailable):
            order_service.create_order(self.period, self.tenant, None)

    def test_paid_period_cannot_be_ordered(self):
        PaymentAttempt.objects.create(
            period=self.period,
            payer=self.tenant,
            amount=Decimal("99999.00"),
            state=PaymentAttempt.STATE_APPROVED,
            source=PaymentAttempt.SOURCE_ADMIN,
            method=PaymentAttempt.METHOD_CASH,
        )
        with self.assertRaises(AlreadySettled):
            order_service.create_order(self.period, self.tenant, self.gateway)

    def test_other_tenant_forbidden(self):
        other = make_user("other@example.com", role=User.ROLE_TENANT)
        self.client.force_authenticate(user=other)
        with use_gateway(self.gateway):
            res = self.client.post(
                reverse("billing:rent-order", kwargs={"period_id": self.period.pk}), {}, format="json"
            )
        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)

    def test_tenant_opens_rent_order(self):
        self.client.force_authenticate(user=self.tenant)
        with use_gateway(self.gateway):
            res = self.client.post(
                reverse("billing:rent-order", kwargs={"period_id": self.period.pk}), {}, format="json"
            )
        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        self.assertEqual(res.data["entry_id"], str(self.period.pk))

    def test_next_due_endpoint(self):
        self.client.force_authenticate(user=self.tenant)
        res = self.client.get(reverse("billing:rent-next-due"))
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["period"]["id"], str(self.period.pk))

        self.client.force_authenticate(user=make_user("nobody@example.com"))
        res = self.client.get(reverse("billing:rent-next-due"))
        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)
