# billing/tests/test_gateway.py

from __future__ import annotations

import io
import json
from decimal import Decimal
from unittest import mock
from urllib.error import HTTPError, URLError

from django.test import SimpleTestCase

from billing.services import gateway
from billing.services.exceptions import GatewayError, GatewayUnavailable
from billing.tests.helpers import WEBHOOK_SECRET, sign_payment, sign_webhook


class _Response(io.BytesIO):
    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


def _json_response(payload) -> _Response:
    return _Response(json.dumps(payload).encode("utf-8"))


class SignatureTests(SimpleTestCase):
    def test_payment_signature(self):
        good = sign_payment("order_1", "pay_1", secret="s3cret")
        self.assertTrue(
            gateway.verify_payment_signature(order_id="order_1", payment_id="pay_1", signature=good, secret="s3cret")
        )
        self.assertFalse(
            gateway.verify_payment_signature(order_id="order_1", payment_id="pay_2", signature=good, secret="s3cret")
        )
        self.assertFalse(
            gateway.verify_payment_signature(order_id="order_1", payment_id="pay_1", signature="", secret="s3cret")
        )

    def test_webhook_signature_covers_exact_bytes(self):
        raw = b'{"event":"payment.captured"}'
        sig = sign_webhook(raw)
        self.assertTrue(gateway.verify_webhook_signature(raw_body=raw, signature=sig, secret=WEBHOOK_SECRET))
        self.assertFalse(
            gateway.verify_webhook_signature(raw_body=raw + b" ", signature=sig, secret=WEBHOOK_SECRET)
        )

    def test_minor_units(self):
        self.assertEqual(gateway.to_minor_units(Decimal("16423.00")), 1642300)
        self.assertEqual(gateway.to_minor_units("0.015"), 2)
        self.assertEqual(gateway.from_minor_units(1642350), Decimal("16423.50"))


class GatewayClientTests(SimpleTestCase):
    def setUp(self):
        self.client = gateway.GatewayClient(
            key_id="rzp_test_key", key_secret="secret", base_url="https://gateway.invalid/v1/"
        )

    def test_requires_credentials(self):
        with self.assertRaises(GatewayUnavailable):
            gateway.GatewayClient(key_id="", key_secret="x")

    def test_from_settings_without_credentials(self):
        with self.settings(PAYMENTS={"GATEWAY": {"KEY_ID": "", "KEY_SECRET": ""}}):
            self.assertIsNone(gateway.GatewayClient.from_settings())

    def test_create_order_posts_minor_units(self):
        reply = {"id": "order_abc", "amount": 150050, "currency": "INR", "status": "created"}
        with mock.patch.object(gateway, "urlopen", return_value=_json_response(reply)) as urlopen:
            order = self.client.create_order(
                amount=Decimal("1500.50"), receipt="invoice_x", notes={"entry_id": 7}
            )

        req = urlopen.call_args.args[0]
        self.assertEqual(req.full_url, "https://gateway.invalid/v1/orders")
        self.assertEqual(req.get_method(), "POST")
        self.assertTrue(req.get_header("Authorization").startswith("Basic "))
        body = json.loads(req.data.decode("utf-8"))
        self.assertEqual(body["amount"], 150050)
        self.assertEqual(body["notes"], {"entry_id": "7"})

        self.assertEqual(order.order_id, "order_abc")
        self.assertEqual(order.amount_minor, 150050)

    def test_http_error_surfaces_gateway_description(self):
        err = HTTPError(
            "https://gateway.invalid/v1/orders",
            400,
            "Bad Request",
            {},
            io.BytesIO(json.dumps({"error": {"description": "amount too small"}}).encode("utf-8")),
        )
        with mock.patch.object(gateway, "urlopen", side_effect=err):
            with self.assertRaisesMessage(GatewayError, "amount too small"):
                self.client.create_order(amount="0.50", receipt="r")

    def test_network_error(self):
        with mock.patch.object(gateway, "urlopen", side_effect=URLError("timed out")):
            with self.assertRaises(GatewayError):
                self.client.fetch_order("order_abc")

    def test_missing_order_id_is_an_error(self):
        with mock.patch.object(gateway, "urlopen", return_value=_json_response({"status": "created"})):
            with self.assertRaises(GatewayError):
                self.client.create_order(amount="10", receipt="r")

    def test_fetch_order_payments_returns_items(self):
        reply = {"count": 1, "items": [{"id": "pay_1", "status": "captured"}]}
        with mock.patch.object(gateway, "urlopen", return_value=_json_response(reply)):
            self.assertEqual(self.client.fetch_order_payments("order_abc"), reply["items"])
