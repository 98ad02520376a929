"""
Ledger reconciliation

Recomputes each account's cached totals from the revenue log and the
completed payouts, and reports any field whose cached value has drifted.
With ``repair=True`` the recomputed values replace the cache inside the
account's transaction.
"""

import logging
from datetime import datetime
from typing import Callable
from uuid import UUID

from .accrual import SOURCE_SUBTOTAL_FIELDS
from .config import Settings
from .models import FieldDrift, PayoutStatus, ReconciliationReport
from .money import from_minor
from .storage import InMemoryStorage, new_account_row, utc_now

logger = logging.getLogger(__name__)


class LedgerReconciler:
    def __init__(
        self,
        storage: InMemoryStorage,
        settings: Settings,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.storage = storage
        self.settings = settings
        self.clock = clock

    def _recompute(self, account_id: UUID) -> dict:
        totals = {field: 0 for field in SOURCE_SUBTOTAL_FIELDS.values()}
        for entry in self.storage.list_entries(account_id):
            totals[SOURCE_SUBTOTAL_FIELDS[entry["source"]]] += entry["amount_minor"]
        totals["total_earnings_minor"] = sum(totals.values())
        totals["total_paid_minor"] = sum(
            p["amount_minor"]
            for p in self.storage.list_payouts(account_id)
            if p["status"] == PayoutStatus.COMPLETED
        )
        return totals

    def reconcile_account(self, account_id: UUID, repair: bool = False) -> ReconciliationReport:
        decimals = self.settings.CURRENCY_DECIMALS
        with self.storage.transaction(account_id) as txn:
            now = self.clock()
            cached = txn.get_account()
            expected = self._recompute(account_id)
            current = cached or new_account_row(account_id, now)

            drifts = [
                FieldDrift(
                    field=field.removesuffix("_minor"),
                    cached=from_minor(current[field], decimals),
                    recomputed=from_minor(value, decimals),
                )
                for field, value in expected.items()
                if current[field] != value
            ]

            repaired = False
            if drifts and repair:
                current.update(expected)
                current["updated_at"] = now
                txn.put_account(current)
                repaired = True

        if drifts:
            logger.warning(
                "Ledger drift for creator %s: %s%s",
                account_id,
                ", ".join(f"{d.field} cached={d.cached} recomputed={d.recomputed}" for d in drifts),
                " (repaired)" if repaired else "",
            )

        return ReconciliationReport(
            account_id=account_id,
            consistent=not drifts,
            drifts=drifts,
            repaired=repaired,
            checked_at=now,
        )

    def reconcile_all(self, repair: bool = False) -> list[ReconciliationReport]:
        return [self.reconcile_account(account_id, repair) for account_id in self.storage.account_ids()]
