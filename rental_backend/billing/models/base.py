# billing/models/base.py

import uuid

from django.db import models


class LedgerEntry(models.Model):
    """
    Something a payer owes.

    Concrete entries expose:
    - ledger_amount: the amount settlement is measured against
    - entry_type: "invoice" | "rent" (used in gateway receipts and notes)
    - payer_may_pay(user): who is allowed to open an order against it

    status is always derived from the entry's payment attempts by
    billing.services.ledger_service and is never set by callers.
    """

    ENTRY_TYPE = ""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    due_date = models.DateField()

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    @property
    def entry_type(self) -> str:
        return self.ENTRY_TYPE

    @property
    def ledger_amount(self):
        raise NotImplementedError

    @property
    def receipt(self) -> str:
        return f"{self.ENTRY_TYPE}_{self.id.hex}"

    def payer_may_pay(self, user) -> bool:
        raise NotImplementedError
