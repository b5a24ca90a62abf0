# billing/services/settlement.py

"""
SETTLEMENT HAND-OFF

Runs the non-financial follow-up of a first APPROVED transition:
1) render a settlement document (receipt / invoice number)
2) notify the payer

RULES:
- Scheduled with transaction.on_commit by the reconciliation engine
- Never raises: every failure is logged and dropped
- The financial state is already committed and is never touched here
  (only attempt.document_ref is written)
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

from django.conf import settings
from django.core.mail import send_mail
from django.db import close_old_connections
from django.utils import timezone
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)

DEFAULT_RENDERER = "billing.services.settlement.render_settlement_document"
DEFAULT_NOTIFIER = "billing.services.settlement.notify_settlement"


def _billing_cfg() -> dict:
    cfg = getattr(settings, "BILLING", {}) or {}
    return cfg if isinstance(cfg, dict) else {}


# ============================================================
# DEFAULT COLLABORATORS
# ============================================================


def render_settlement_document(attempt, entry, payer, payee) -> str:
    """Invoice number INV-YYYYMM-XXXXXX for the settled attempt."""
    paid_at = timezone.localtime(attempt.paid_at or timezone.now())
    return f"INV-{paid_at:%Y%m}-{attempt.id.hex[:6].upper()}"


def notify_settlement(document_ref, attempt, payer, payee) -> None:
    email = getattr(payer, "email", "") or ""
    if not email:
        logger.info("Settlement notice skipped: payer has no email", extra={"attempt_id": str(attempt.id)})
        return

    entry = attempt.entry
    lines = [
        f"Payment received: {attempt.currency} {attempt.amount}",
        f"Receipt: {document_ref}",
        f"For: {entry}",
    ]
    if payee is not None:
        lines.append(f"Paid to: {getattr(payee, 'display_name', '') or payee}")

    send_mail(
        subject=f"Payment receipt {document_ref}",
        message="\n".join(lines),
        from_email=None,
        recipient_list=[email],
        fail_silently=False,
    )


# ============================================================
# SETTLEMENT
# ============================================================


def _payee_for(entry):
    unit = getattr(entry, "unit", None)
    return getattr(unit, "owner", None) if unit is not None else None


def settle_attempt(attempt_id, *, renderer=None, notifier=None) -> str | None:
    """Render + notify for one approved attempt. Returns the document ref, or None on failure."""
    from billing.models import PaymentAttempt

    try:
        attempt = PaymentAttempt.objects.select_related(
            "payer", "invoice__unit__owner", "period__unit__owner"
        ).get(pk=attempt_id)
    except PaymentAttempt.DoesNotExist:
        logger.warning("Settlement skipped: attempt not found", extra={"attempt_id": str(attempt_id)})
        return None

    if attempt.state != PaymentAttempt.STATE_APPROVED:
        logger.warning(
            "Settlement skipped: attempt not approved",
            extra={"attempt_id": str(attempt_id), "state": attempt.state},
        )
        return None

    cfg = _billing_cfg()
    renderer = renderer or import_string(cfg.get("SETTLEMENT_RENDERER") or DEFAULT_RENDERER)
    notifier = notifier or import_string(cfg.get("SETTLEMENT_NOTIFIER") or DEFAULT_NOTIFIER)

    entry = attempt.entry
    payer = attempt.payer
    payee = _payee_for(entry)

    try:
        document_ref = attempt.document_ref or renderer(attempt, entry, payer, payee)
    except Exception:
        logger.exception("Settlement document rendering failed", extra={"attempt_id": str(attempt_id)})
        return None

    if document_ref and not attempt.document_ref:
        PaymentAttempt.objects.filter(pk=attempt.pk, document_ref="").update(
            document_ref=document_ref
        )
        attempt.document_ref = document_ref

    try:
        notifier(document_ref, attempt, payer, payee)
    except Exception:
        logger.exception("Settlement notification failed", extra={"attempt_id": str(attempt_id)})

    logger.info(
        "Settlement completed",
        extra={"attempt_id": str(attempt_id), "document_ref": document_ref},
    )
    return document_ref


class SettlementDispatcher:
    """
    Fire-and-forget runner for settle_attempt.

    With run_async the work goes to a small thread pool so the reconciling
    request returns without waiting; otherwise it runs inline (tests, CLI).
    """

    def __init__(self, *, run_async: bool = False, max_workers: int = 2):
        self.run_async = run_async
        self._executor = (
            ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="settlement")
            if run_async
            else None
        )

    @classmethod
    def from_settings(cls) -> SettlementDispatcher:
        cfg = _billing_cfg()
        return cls(
            run_async=bool(cfg.get("SETTLEMENT_ASYNC", False)),
            max_workers=int(cfg.get("SETTLEMENT_WORKERS") or 2),
        )

    def _run(self, attempt_id):
        try:
            settle_attempt(attempt_id)
        except Exception:
            logger.exception("Settlement crashed", extra={"attempt_id": str(attempt_id)})
        finally:
            if self.run_async:
                close_old_connections()

    def submit(self, attempt_id) -> None:
        if self._executor is None:
            self._run(attempt_id)
            return
        self._executor.submit(self._run, attempt_id)


def get_dispatcher() -> SettlementDispatcher:
    from django.apps import apps

    dispatcher = getattr(apps.get_app_config("billing"), "dispatcher", None)
    return dispatcher or SettlementDispatcher()
