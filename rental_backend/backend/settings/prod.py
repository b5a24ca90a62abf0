# backend/settings/prod.py
"""
PATH: backend/settings/prod.py

PRODUCTION SETTINGS

Fail-closed rules:
- DEBUG forced off, SECRET_KEY must be a real value
- Postgres only (sqlite DATABASE_URL refused)
- CORS/CSRF origins explicit and https only
- Online payments need all three gateway secrets, or none
  (partial configuration would accept orders that can never be verified)
"""

from __future__ import annotations

from django.core.exceptions import ImproperlyConfigured

from .base import *  # noqa: F403
from .base import BASE_DIR, BILLING, MIDDLEWARE, PAYMENTS, env

# ----------------------------
# DEBUG / SECRET
# ----------------------------
DEBUG = False

_secret_key = (env("SECRET_KEY", default="") or "").strip()
if not _secret_key or _secret_key == "dev-insecure-change-me":
    raise ImproperlyConfigured("SECRET_KEY must be set to a strong value in production.")
SECRET_KEY = _secret_key

ALLOWED_HOSTS = env.list("ALLOWED_HOSTS", default=[])
if not ALLOWED_HOSTS:
    raise ImproperlyConfigured("ALLOWED_HOSTS must be set in production.")

# ----------------------------
# DATABASE (Postgres only)
# ----------------------------
_database_url = (env("DATABASE_URL", default="") or "").strip()
if not _database_url or _database_url.startswith("sqlite"):
    raise ImproperlyConfigured("DATABASE_URL must point at Postgres in production.")

DATABASES = {"default": env.db("DATABASE_URL")}
DATABASES["default"]["CONN_MAX_AGE"] = env.int("DB_CONN_MAX_AGE", default=60)

# ----------------------------
# PAYMENT GATEWAY
# ----------------------------
_gateway = PAYMENTS["GATEWAY"]
_gateway_keys = ("KEY_ID", "KEY_SECRET", "WEBHOOK_SECRET")
_present = [k for k in _gateway_keys if _gateway.get(k)]
if _present and len(_present) != len(_gateway_keys):
    missing = ", ".join(f"GATEWAY_{k}" for k in _gateway_keys if k not in _present)
    raise ImproperlyConfigured(f"Incomplete payment gateway configuration; missing {missing}.")
if _gateway.get("BASE_URL", "").startswith("http://"):
    raise ImproperlyConfigured("GATEWAY_BASE_URL must be https:// in production.")

if BILLING["LATE_FEE_POLICY"] not in ("frozen_at_order", "finalized_at_capture"):
    raise ImproperlyConfigured(
        f"Unknown BILLING_LATE_FEE_POLICY {BILLING['LATE_FEE_POLICY']!r}."
    )

# ----------------------------
# STATIC (WhiteNoise)
# ----------------------------
STATIC_ROOT = env("STATIC_ROOT", default=str(BASE_DIR / "staticfiles"))
MIDDLEWARE.insert(1, "whitenoise.middleware.WhiteNoiseMiddleware")
STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "whitenoise.storage.CompressedManifestStaticFilesStorage"},
}

# ----------------------------
# PROXY / SSL
# ----------------------------
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
SECURE_SSL_REDIRECT = env.bool("SECURE_SSL_REDIRECT", default=True)
SECURE_HSTS_SECONDS = env.int("SECURE_HSTS_SECONDS", default=3600)
SECURE_HSTS_INCLUDE_SUBDOMAINS = env.bool("SECURE_HSTS_INCLUDE_SUBDOMAINS", default=True)
SECURE_HSTS_PRELOAD = env.bool("SECURE_HSTS_PRELOAD", default=False)

SESSION_COOKIE_SECURE = True
CSRF_COOKIE_SECURE = True
SESSION_COOKIE_HTTPONLY = True
CSRF_COOKIE_HTTPONLY = True

SECURE_CONTENT_TYPE_NOSNIFF = True
SECURE_REFERRER_POLICY = "same-origin"
X_FRAME_OPTIONS = "DENY"

# ----------------------------
# CORS / CSRF
# ----------------------------
CORS_ALLOWED_ORIGINS = env.list("CORS_ALLOWED_ORIGINS", default=[])
CSRF_TRUSTED_ORIGINS = env.list("CSRF_TRUSTED_ORIGINS", default=[])

for _name, _origins in (
    ("CORS_ALLOWED_ORIGINS", CORS_ALLOWED_ORIGINS),
    ("CSRF_TRUSTED_ORIGINS", CSRF_TRUSTED_ORIGINS),
):
    if not _origins:
        raise ImproperlyConfigured(f"{_name} must be set in production.")
    if any(o.startswith("http://") or "localhost" in o for o in _origins):
        raise ImproperlyConfigured(f"{_name} must be https:// and not localhost in production.")

CORS_ALLOW_CREDENTIALS = False
