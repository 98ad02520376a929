"""
Ledger Store

In-memory tables for revenue accounts, the append-only revenue log and payout
requests. Writes go through ``InMemoryStorage.transaction(account_id)``, which
holds that account's writer lock, stages every change, and applies them all
on successful exit. An exception inside the block discards the staged writes.
"""

import itertools
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional
from uuid import UUID

from .models import OPEN_PAYOUT_STATUSES, PayoutStatus


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_account_row(account_id: UUID, now: datetime) -> dict:
    return {
        "account_id": account_id,
        "total_earnings_minor": 0,
        "total_paid_minor": 0,
        "referral_bonus_minor": 0,
        "campaign_success_fees_minor": 0,
        "tip_jar_earnings_minor": 0,
        "created_at": now,
        "updated_at": now,
    }


class StorageTransaction:
    """Staged writes for a single account."""

    def __init__(self, storage: "InMemoryStorage", account_id: UUID):
        self.storage = storage
        self.account_id = account_id
        self._account: Optional[dict] = None
        self._entries: list[dict] = []
        self._payouts: dict[UUID, dict] = {}
        self._idempotency: dict[tuple, UUID] = {}

    def _check_owner(self, account_id: UUID) -> None:
        if account_id != self.account_id:
            raise ValueError(
                f"Transaction for account {self.account_id} cannot write account {account_id}"
            )

    def get_account(self) -> Optional[dict]:
        if self._account is not None:
            return dict(self._account)
        row = self.storage.accounts.get(self.account_id)
        return dict(row) if row else None

    def put_account(self, row: dict) -> None:
        self._check_owner(row["account_id"])
        self._account = dict(row)

    def append_entry(self, row: dict) -> None:
        self._check_owner(row["account_id"])
        self._entries.append(dict(row))

    def get_payout(self, payout_id: UUID) -> Optional[dict]:
        if payout_id in self._payouts:
            return dict(self._payouts[payout_id])
        row = self.storage.payout_requests.get(payout_id)
        if row is None or row["account_id"] != self.account_id:
            return None
        return dict(row)

    def put_payout(self, row: dict) -> None:
        self._check_owner(row["account_id"])
        self._payouts[row["id"]] = dict(row)

    def open_payouts(self) -> list[dict]:
        rows = {
            pid: self.storage.payout_requests[pid]
            for pid in self.storage.payouts_by_account.get(self.account_id, [])
        }
        rows.update(self._payouts)
        return [dict(r) for r in rows.values() if r["status"] in OPEN_PAYOUT_STATUSES]

    def lookup_idempotency(self, kind: str, key: str) -> Optional[UUID]:
        index_key = (self.account_id, kind, key)
        if index_key in self._idempotency:
            return self._idempotency[index_key]
        return self.storage.idempotency_index.get(index_key)

    def record_idempotency(self, kind: str, key: str, record_id: UUID) -> None:
        self._idempotency[(self.account_id, kind, key)] = record_id


class InMemoryStorage:
    def __init__(self):
        self.accounts: dict[UUID, dict] = {}
        self.revenue_entries: dict[UUID, dict] = {}
        self.payout_requests: dict[UUID, dict] = {}
        self.entries_by_account: dict[UUID, list[UUID]] = {}
        self.payouts_by_account: dict[UUID, list[UUID]] = {}
        self.idempotency_index: dict[tuple, UUID] = {}
        self._sequence = itertools.count(1)
        self._account_locks: dict[UUID, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        # Held only while applying a commit or copying a snapshot
        self._commit_lock = threading.RLock()

    def _lock_for(self, account_id: UUID) -> threading.Lock:
        with self._locks_guard:
            lock = self._account_locks.get(account_id)
            if lock is None:
                lock = self._account_locks[account_id] = threading.Lock()
            return lock

    def next_sequence(self) -> int:
        return next(self._sequence)

    @contextmanager
    def transaction(self, account_id: UUID) -> Iterator[StorageTransaction]:
        with self._lock_for(account_id):
            txn = StorageTransaction(self, account_id)
            yield txn
            self._apply(txn)

    def _apply(self, txn: StorageTransaction) -> None:
        with self._commit_lock:
            if txn._account is not None:
                self.accounts[txn.account_id] = txn._account
            for entry in txn._entries:
                self.revenue_entries[entry["id"]] = entry
                self.entries_by_account.setdefault(txn.account_id, []).append(entry["id"])
            for payout_id, payout in txn._payouts.items():
                if payout_id not in self.payout_requests:
                    self.payouts_by_account.setdefault(txn.account_id, []).append(payout_id)
                self.payout_requests[payout_id] = payout
            self.idempotency_index.update(txn._idempotency)

    # Snapshot reads. Rows are replaced, never mutated, on commit.

    def get_account(self, account_id: UUID) -> Optional[dict]:
        with self._commit_lock:
            return self.accounts.get(account_id)

    def list_entries(self, account_id: UUID) -> list[dict]:
        with self._commit_lock:
            return [self.revenue_entries[eid] for eid in self.entries_by_account.get(account_id, [])]

    def list_payouts(self, account_id: UUID) -> list[dict]:
        with self._commit_lock:
            return [self.payout_requests[pid] for pid in self.payouts_by_account.get(account_id, [])]

    def get_payout(self, payout_id: UUID) -> Optional[dict]:
        with self._commit_lock:
            return self.payout_requests.get(payout_id)

    def list_payouts_by_status(self, status: PayoutStatus) -> list[dict]:
        with self._commit_lock:
            return [p for p in self.payout_requests.values() if p["status"] == status]

    def account_ids(self) -> list[UUID]:
        with self._commit_lock:
            return list(self.accounts)

    def snapshot(self, account_id: UUID) -> tuple[Optional[dict], list[dict]]:
        """The account row and its payout requests as of one commit."""
        with self._commit_lock:
            return self.get_account(account_id), self.list_payouts(account_id)
