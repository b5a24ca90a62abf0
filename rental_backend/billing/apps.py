# billing/apps.py

"""
BILLING APP CONFIG

Rent & maintenance ledger with gateway reconciliation:
- Ad-hoc invoices and recurring rent periods
- Payment attempts (manual and gateway)
- Webhook / client proof / manual poll reconciliation

The gateway client and the settlement dispatcher are built once here and
read by views through the app config.
"""

import logging

from django.apps import AppConfig

logger = logging.getLogger(__name__)


class BillingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "billing"
    verbose_name = "Billing & Reconciliation"

    gateway = None
    dispatcher = None

    def ready(self):
        from billing import signals  # noqa: F401
        from billing.services.gateway import GatewayClient
        from billing.services.settlement import SettlementDispatcher

        self.gateway = GatewayClient.from_settings()
        if self.gateway is None:
            logger.warning("Payment gateway credentials missing; online payments disabled")

        self.dispatcher = SettlementDispatcher.from_settings()
