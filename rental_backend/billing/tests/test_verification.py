# billing/tests/test_verification.py

from __future__ import annotations

import uuid
from datetime import date
from unittest import mock

from django.conf import settings
from django.test import SimpleTestCase, TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from billing.models import AdHocInvoice, PaymentAttempt
from billing.services import ledger_service, order_service
from billing.services.exceptions import GatewayError
from billing.services.verification import order_is_paid, poll_attempt
from billing.tests.helpers import (
    FakeGateway,
    make_admin,
    make_invoice,
    make_unit,
    make_user,
    sign_payment,
    use_gateway,
)


class OrderIsPaidTests(SimpleTestCase):
    def test_order_or_payment_level_success(self):
        self.assertTrue(order_is_paid({"status": "paid"}, []))
        self.assertTrue(order_is_paid({"status": "attempted", "amount": 500, "amount_paid": 500}, []))
        self.assertTrue(order_is_paid({"status": "attempted"}, [{"status": "captured"}]))
        self.assertFalse(order_is_paid({"status": "created", "amount": 500, "amount_paid": 0}, []))
        self.assertFalse(order_is_paid({"status": "attempted"}, [{"status": "failed"}]))

    def test_captured_flag_counts_as_captured(self):
        self.assertTrue(order_is_paid({"status": "attempted"}, [{"status": "authorized", "captured": True}]))
        self.assertFalse(order_is_paid({"status": "attempted"}, [{"status": "authorized", "captured": "yes"}]))


class _VerificationBase(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.gateway = FakeGateway()
        self.resident = make_user("resident@example.com")
        self.unit = make_unit(residents=[self.resident])
        self.invoice = make_invoice(self.unit, amount="1000.00", due_date=date(2099, 1, 10))
        self.quote = order_service.create_order(self.invoice, self.resident, self.gateway)
        self.order_id = self.quote.order_id
        self.client.force_authenticate(user=self.resident)

    def _attempt(self) -> PaymentAttempt:
        return PaymentAttempt.objects.get(gateway_order_id=self.order_id)


class ClientProofTests(_VerificationBase):
    def setUp(self):
        super().setUp()
        self.url = reverse("billing:payment-verify")

    def _proof(self, payment_id="pay_1", order_id=None, signature=None):
        order_id = order_id or self.order_id
        return {
            "order_id": order_id,
            "payment_id": payment_id,
            "signature": signature or sign_payment(order_id, payment_id),
        }

    def test_valid_proof_settles(self):
        with self.captureOnCommitCallbacks(execute=True):
            res = self.client.post(self.url, self._proof(), format="json")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["ledger_status"], AdHocInvoice.STATUS_PAID)
        self.assertEqual(res.data["total_paid"], "1000.00")
        self.assertEqual(res.data["attempt_state"], PaymentAttempt.STATE_APPROVED)
        self.assertEqual(self._attempt().gateway_payment_id, "pay_1")

    def test_bad_signature_is_400_and_writes_nothing(self):
        res = self.client.post(self.url, self._proof(signature="0" * 64), format="json")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self._attempt().state, PaymentAttempt.STATE_PENDING)

    def test_other_payer_is_403(self):
        self.client.force_authenticate(user=make_user("other@example.com"))
        res = self.client.post(self.url, self._proof(), format="json")
        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(self._attempt().state, PaymentAttempt.STATE_PENDING)

    def test_unknown_order_is_404(self):
        res = self.client.post(self.url, self._proof(order_id="order_nobody"), format="json")
        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)

    def test_missing_key_secret_is_500(self):
        gateway = {**settings.PAYMENTS["GATEWAY"], "KEY_SECRET": ""}
        with self.settings(PAYMENTS={"GATEWAY": gateway}):
            res = self.client.post(self.url, self._proof(), format="json")
        self.assertEqual(res.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    def test_anonymous_is_rejected(self):
        self.client.force_authenticate(user=None)
        res = self.client.post(self.url, self._proof(), format="json")
        self.assertEqual(res.status_code, status.HTTP_401_UNAUTHORIZED)


class PollTests(_VerificationBase):
    def _url(self, attempt_id=None):
        return reverse("billing:payment-poll", kwargs={"attempt_id": attempt_id or self._attempt().pk})

    def test_paid_order_is_reconciled(self):
        self.gateway.capture(self.order_id, payment_id="pay_polled")

        with use_gateway(self.gateway), self.captureOnCommitCallbacks(execute=True):
            res = self.client.post(self._url())

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertTrue(res.data["verified"])
        self.assertEqual(res.data["order_status"], "paid")
        self.assertEqual(res.data["ledger_status"], AdHocInvoice.STATUS_PAID)
        self.assertEqual(self._attempt().gateway_payment_id, "pay_polled")

    def test_unpaid_order_changes_nothing(self):
        with use_gateway(self.gateway):
            res = self.client.post(self._url())

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertFalse(res.data["verified"])
        self.assertEqual(res.data["order_status"], "created")
        self.assertEqual(self._attempt().state, PaymentAttempt.STATE_PENDING)

    def test_gateway_error_is_reported_as_unverified(self):
        self.gateway.fail_with = GatewayError("Gateway URLError: timed out")
        with use_gateway(self.gateway):
            res = self.client.post(self._url())

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertFalse(res.data["verified"])
        self.assertEqual(self._attempt().state, PaymentAttempt.STATE_PENDING)

    def test_settled_attempt_does_not_need_gateway(self):
        self.gateway.capture(self.order_id)
        with use_gateway(self.gateway), self.captureOnCommitCallbacks(execute=True):
            self.client.post(self._url())

        with use_gateway(None):
            res = self.client.post(self._url())

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertTrue(res.data["verified"])
        self.assertEqual(res.data["total_paid"], "1000.00")

    def test_pending_attempt_without_gateway_is_500(self):
        with use_gateway(None):
            res = self.client.post(self._url())
        self.assertEqual(res.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    def test_only_payer_or_admin(self):
        self.client.force_authenticate(user=make_user("other@example.com"))
        with use_gateway(self.gateway):
            res = self.client.post(self._url())
        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=make_admin())
        with use_gateway(self.gateway):
            res = self.client.post(self._url())
        self.assertEqual(res.status_code, status.HTTP_200_OK)

    def test_manual_payment_cannot_be_polled(self):
        admin = make_admin()
        attempt, _ = ledger_service.record_manual_payment(
            invoice=self.invoice, recorded_by=admin, amount="10", method=PaymentAttempt.METHOD_CASH
        )
        self.client.force_authenticate(user=admin)
        res = self.client.post(self._url(attempt.pk))
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_attempt_is_acknowledged_unverified(self):
        res = self.client.post(self._url(uuid.uuid4()))

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertFalse(res.data["verified"])
        self.assertEqual(res.data["detail"], "Unknown payment attempt")

    def test_paid_order_is_unverified_when_reconcile_finds_nothing(self):
        self.gateway.capture(self.order_id)

        with mock.patch("billing.services.verification.reconcile", return_value=None):
            outcome = poll_attempt(self._attempt(), self.gateway)

        self.assertFalse(outcome.verified)
        self.assertIsNone(outcome.result)
        self.assertEqual(self._attempt().state, PaymentAttempt.STATE_PENDING)

    def test_poll_losing_to_a_failure_is_unverified(self):
        self.gateway.capture(self.order_id)
        attempt = self._attempt()
        PaymentAttempt.objects.filter(pk=attempt.pk).update(state=PaymentAttempt.STATE_FAILED)

        # attempt still holds the stale PENDING copy, so the gateway is consulted
        outcome = poll_attempt(attempt, self.gateway)

        self.assertFalse(outcome.verified)
        self.assertEqual(outcome.result.attempt_state, PaymentAttempt.STATE_FAILED)
        self.assertFalse(outcome.result.first_transition)
