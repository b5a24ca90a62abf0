# billing/signals.py

import logging

from django.db.models.signals import post_save
from django.dispatch import receiver

from billing.services.ledger_service import ensure_first_period
from properties.models import TenantProfile

logger = logging.getLogger(__name__)


@receiver(post_save, sender=TenantProfile, dispatch_uid="billing_ensure_first_period")
def tenant_profile_saved(sender, instance, **kwargs):
    """Move-in trigger: a profile with a move-in date and rent gets its first period."""
    if not instance.is_active:
        return
    period = ensure_first_period(instance)
    if period is not None:
        logger.debug(
            "First period ensured",
            extra={"tenant_id": str(instance.tenant_id), "period_id": str(period.pk)},
        )
