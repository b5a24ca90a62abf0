# backend/settings/test.py
"""
PATH: backend/settings/test.py

TEST SETTINGS

- In-memory SQLite
- Fixed gateway credentials so signatures can be computed in tests
- Settlement runs inline (deterministic, no threads)
- Fast password hashing, locmem mail
"""

from __future__ import annotations

from .base import *  # noqa: F403
from .base import LOGGING, REST_FRAMEWORK

DEBUG = False
SECRET_KEY = "test-secret-key"
TIME_ZONE = "UTC"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]
EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"

PAYMENTS = {
    "GATEWAY": {
        "KEY_ID": "rzp_test_key",
        "KEY_SECRET": "test_key_secret",
        "WEBHOOK_SECRET": "test_webhook_secret",
        "CURRENCY": "INR",
        "BASE_URL": "https://gateway.invalid/v1",
        "TIMEOUT": 2,
    }
}

BILLING = {
    "LATE_FEE_POLICY": "frozen_at_order",
    "SETTLEMENT_ASYNC": False,
    "SETTLEMENT_WORKERS": 1,
    "SETTLEMENT_RENDERER": "billing.services.settlement.render_settlement_document",
    "SETTLEMENT_NOTIFIER": "billing.services.settlement.notify_settlement",
    "DEFAULT_INVOICE_DUE_DAY": 10,
}

REST_FRAMEWORK = {
    **REST_FRAMEWORK,
    "DEFAULT_THROTTLE_CLASSES": (),
    "DEFAULT_THROTTLE_RATES": {
        "anon": "10000/min",
        "user": "10000/min",
        "webhook": "10000/min",
        "verify": "10000/min",
    },
}

LOGGING = {**LOGGING, "root": {"handlers": ["console"], "level": "CRITICAL"}}
LOGGING["loggers"] = {
    name: {**cfg, "level": "CRITICAL"} for name, cfg in LOGGING["loggers"].items()
}
