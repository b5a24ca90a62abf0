# billing/tests/helpers.py

from __future__ import annotations

import hashlib
import hmac
import json
from datetime import date
from decimal import Decimal
from itertools import count
from unittest import mock

from django.apps import apps
from django.contrib.auth import get_user_model

from billing.models import AdHocInvoice
from billing.services.exceptions import GatewayError
from billing.services.gateway import GatewayOrder, to_minor_units
from properties.models import Property

User = get_user_model()

# Must match backend/settings/test.py
KEY_SECRET = "test_key_secret"
WEBHOOK_SECRET = "test_webhook_secret"


# -----------------------------
# Fake gateway
# -----------------------------


class FakeGateway:
    """In-memory stand-in for GatewayClient with the same call surface."""

    key_id = "rzp_test_key"
    currency = "INR"

    def __init__(self):
        self._ids = count(1)
        self.orders: dict[str, dict] = {}
        self.payments: dict[str, list[dict]] = {}
        self.fail_with: Exception | None = None
        self.created: list[dict] = []

    def create_order(self, *, amount, receipt, notes=None):
        if self.fail_with is not None:
            raise self.fail_with
        order_id = f"order_test_{next(self._ids):04d}"
        minor = to_minor_units(amount)
        order = {
            "id": order_id,
            "amount": minor,
            "amount_paid": 0,
            "currency": self.currency,
            "receipt": receipt,
            "status": "created",
            "notes": dict(notes or {}),
        }
        self.orders[order_id] = order
        self.payments[order_id] = []
        self.created.append(order)
        return GatewayOrder(
            order_id=order_id,
            amount_minor=minor,
            currency=self.currency,
            receipt=receipt,
            raw=order,
        )

    def capture(self, order_id, payment_id="pay_test_0001", captured_at=1736000000):
        order = self.orders[order_id]
        order["status"] = "paid"
        order["amount_paid"] = order["amount"]
        self.payments[order_id].append(
            {
                "id": payment_id,
                "order_id": order_id,
                "status": "captured",
                "amount": order["amount"],
                "captured_at": captured_at,
                "created_at": captured_at,
            }
        )

    def fetch_order(self, order_id):
        if self.fail_with is not None:
            raise self.fail_with
        if order_id not in self.orders:
            raise GatewayError(f"Gateway HTTPError: 404 order {order_id} not found")
        return dict(self.orders[order_id])

    def fetch_order_payments(self, order_id):
        if self.fail_with is not None:
            raise self.fail_with
        return list(self.payments.get(order_id, []))


def use_gateway(gateway):
    """Swap the app-level gateway client for the duration of a test."""
    return mock.patch.object(apps.get_app_config("billing"), "gateway", gateway)


# -----------------------------
# Signatures
# -----------------------------


def sign_payment(order_id: str, payment_id: str, secret: str = KEY_SECRET) -> str:
    message = f"{order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def webhook_body(event: str, order_id: str, *, payment_id="pay_test_0001", status="captured", captured_at=None) -> bytes:
    payment = {"id": payment_id, "order_id": order_id, "status": status}
    if captured_at is not None:
        payment["captured_at"] = captured_at
    return json.dumps({"event": event, "payload": {"payment": {"entity": payment}}}).encode("utf-8")


def sign_webhook(raw_body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


# -----------------------------
# Factories
# -----------------------------


def make_user(email: str, role: str = User.ROLE_RESIDENT, **extra):
    return User.objects.create_user(email=email, password="pass", role=role, **extra)


def make_admin(email: str = "admin@example.com"):
    return make_user(email, role=User.ROLE_ADMIN)


def make_unit(name: str = "A-101", owner=None, residents=()):
    unit = Property.objects.create(
        name=name,
        building_name="Lakeview",
        unit_number=name,
        owner=owner,
    )
    if residents:
        unit.residents.add(*residents)
    return unit


def make_invoice(unit, *, amount="1000.00", month=1, year=2025, due_date=None):
    return AdHocInvoice.objects.create(
        unit=unit,
        month=month,
        year=year,
        amount=Decimal(amount),
        due_date=due_date or date(year, month, 10),
    )
