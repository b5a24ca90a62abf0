# billing/services/gateway.py
from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from django.conf import settings

from billing.services.exceptions import GatewayError, GatewayUnavailable

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.razorpay.com/v1"
DEFAULT_TIMEOUT = 15


def gateway_config() -> dict:
    payments = getattr(settings, "PAYMENTS", {}) or {}
    cfg = payments.get("GATEWAY") if isinstance(payments, dict) else None
    return cfg if isinstance(cfg, dict) else {}


def to_minor_units(amount) -> int:
    try:
        major = Decimal(str(amount))
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise ValueError("amount must be a valid Decimal") from exc
    minor = (major * Decimal("100")).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(minor)


def from_minor_units(minor) -> Decimal:
    return (Decimal(str(int(minor))) / Decimal("100")).quantize(
        Decimal("0.01"), rounding=ROUND_HALF_UP
    )


def _safe_preview(text: str, limit: int = 500) -> str:
    text = (text or "").strip()
    if len(text) <= limit:
        return text
    return text[:limit] + " ...(truncated)"


def _hmac_sha256_hex(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def signatures_match(expected: str, supplied: str | None) -> bool:
    if not supplied:
        return False
    return hmac.compare_digest(expected, str(supplied).strip())


def verify_webhook_signature(*, raw_body: bytes, signature: str | None, secret: str) -> bool:
    return signatures_match(_hmac_sha256_hex(secret, raw_body or b""), signature)


def verify_payment_signature(*, order_id: str, payment_id: str, signature: str | None, secret: str) -> bool:
    message = f"{order_id}|{payment_id}".encode("utf-8")
    return signatures_match(_hmac_sha256_hex(secret, message), signature)


@dataclass(frozen=True)
class GatewayOrder:
    order_id: str
    amount_minor: int
    currency: str
    receipt: str
    raw: dict


class GatewayClient:
    """
    Thin REST client for a Razorpay-compatible orders API.

    Built once at app startup (see billing.apps) and passed to the services
    that need it. All calls block for at most `timeout` seconds.
    """

    def __init__(
        self,
        *,
        key_id: str,
        key_secret: str,
        base_url: str = DEFAULT_BASE_URL,
        currency: str = "INR",
        timeout: int = DEFAULT_TIMEOUT,
    ):
        if not key_id or not key_secret:
            raise GatewayUnavailable("Payment gateway credentials are not configured")
        self.key_id = key_id
        self._key_secret = key_secret
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.currency = currency or "INR"
        self.timeout = int(timeout or DEFAULT_TIMEOUT)

    @classmethod
    def from_settings(cls) -> GatewayClient | None:
        cfg = gateway_config()
        key_id = (cfg.get("KEY_ID") or "").strip()
        key_secret = (cfg.get("KEY_SECRET") or "").strip()
        if not key_id or not key_secret:
            return None
        return cls(
            key_id=key_id,
            key_secret=key_secret,
            base_url=cfg.get("BASE_URL") or DEFAULT_BASE_URL,
            currency=cfg.get("CURRENCY") or "INR",
            timeout=cfg.get("TIMEOUT") or DEFAULT_TIMEOUT,
        )

    def _auth_header(self) -> str:
        token = base64.b64encode(f"{self.key_id}:{self._key_secret}".encode("utf-8"))
        return f"Basic {token.decode('ascii')}"

    def _request_json(self, method: str, path: str, *, body: dict | None = None) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        data = None
        if body is not None:
            data = json.dumps(body, ensure_ascii=False).encode("utf-8")

        req = Request(
            url,
            data=data,
            headers={
                "Authorization": self._auth_header(),
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            method=method,
        )

        try:
            with urlopen(req, timeout=self.timeout) as resp:
                raw = resp.read().decode("utf-8", errors="replace")
        except HTTPError as e:
            raw = ""
            try:
                raw = e.read().decode("utf-8", errors="replace")
            except OSError:
                raw = ""
            message = _safe_preview(raw) or str(e)
            try:
                parsed = json.loads(raw)
                error = parsed.get("error") if isinstance(parsed, dict) else None
                if isinstance(error, dict) and error.get("description"):
                    message = str(error["description"])
            except ValueError:
                pass
            raise GatewayError(f"Gateway HTTPError: {e.code} {message}") from e
        except URLError as e:
            raise GatewayError(f"Gateway URLError: {e.reason}") from e
        except OSError as e:
            raise GatewayError(f"Gateway request failed: {e}") from e

        try:
            parsed = json.loads(raw)
        except ValueError as e:
            raise GatewayError(f"Gateway returned non-JSON: {_safe_preview(raw)}") from e
        if not isinstance(parsed, dict):
            raise GatewayError("Gateway returned an unexpected response shape")
        return parsed

    def create_order(self, *, amount, receipt: str, notes: dict | None = None) -> GatewayOrder:
        payload = {
            "amount": to_minor_units(amount),
            "currency": self.currency,
            "receipt": receipt,
            "notes": {k: str(v) for k, v in (notes or {}).items()},
        }
        parsed = self._request_json("POST", "/orders", body=payload)

        order_id = str(parsed.get("id") or "").strip()
        if not order_id:
            raise GatewayError("Gateway order response missing id")

        logger.info(
            "Gateway order created",
            extra={"order_id": order_id, "receipt": receipt, "amount_minor": payload["amount"]},
        )
        return GatewayOrder(
            order_id=order_id,
            amount_minor=int(parsed.get("amount") or payload["amount"]),
            currency=str(parsed.get("currency") or self.currency),
            receipt=receipt,
            raw=parsed,
        )

    def fetch_order(self, order_id: str) -> dict:
        return self._request_json("GET", f"/orders/{quote(str(order_id), safe='')}")

    def fetch_order_payments(self, order_id: str) -> list[dict]:
        parsed = self._request_json("GET", f"/orders/{quote(str(order_id), safe='')}/payments")
        items = parsed.get("items") or []
        return [item for item in items if isinstance(item, dict)]


def get_gateway() -> GatewayClient:
    from django.apps import apps

    client = getattr(apps.get_app_config("billing"), "gateway", None)
    if client is None:
        raise GatewayUnavailable("Payment gateway is not configured")
    return client
