"""
Payout Request Manager

Lifecycle: PENDING -> PROCESSING -> COMPLETED / FAILED, plus PENDING -> FAILED
for cancellation. An open (PENDING or PROCESSING) request reserves its amount
from the creator's available balance from the moment it is created; the
balance check and the reservation happen inside one account transaction.
"""

import logging
from datetime import datetime
from typing import Callable, Optional
from uuid import UUID, uuid4

from .balance import available_minor
from .config import Settings
from .directory import InMemoryDirectory
from .errors import (
    AccountNotFoundError,
    BelowMinimumThresholdError,
    InsufficientAvailableBalanceError,
    InvalidStateTransitionError,
    PayoutNotFoundError,
)
from .models import BankDetails, PayoutRequest, PayoutStatus
from .money import AmountLike, from_minor, positive_minor, to_minor
from .storage import InMemoryStorage, StorageTransaction, utc_now

logger = logging.getLogger(__name__)


class PayoutRequestManager:
    def __init__(
        self,
        storage: InMemoryStorage,
        directory: InMemoryDirectory,
        settings: Settings,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.storage = storage
        self.directory = directory
        self.settings = settings
        self.clock = clock

    def _to_model(self, row: dict) -> PayoutRequest:
        return PayoutRequest.from_row(row, self.settings.CURRENCY_DECIMALS, self.settings.CURRENCY)

    def request_payout(
        self,
        account_id: UUID,
        amount: AmountLike,
        bank_details: Optional[BankDetails] = None,
        idempotency_key: Optional[str] = None,
    ) -> PayoutRequest:
        decimals = self.settings.CURRENCY_DECIMALS
        amount_minor = positive_minor(amount, decimals)
        threshold_minor = to_minor(self.settings.MIN_PAYOUT_THRESHOLD, decimals)

        if not self.directory.creator_exists(account_id):
            raise AccountNotFoundError(f"Creator {account_id} not found")

        if amount_minor < threshold_minor:
            raise BelowMinimumThresholdError(
                f"Minimum payout threshold is {from_minor(threshold_minor, decimals)} {self.settings.CURRENCY}"
            )

        with self.storage.transaction(account_id) as txn:
            if idempotency_key:
                existing_id = txn.lookup_idempotency("payout", idempotency_key)
                if existing_id:
                    logger.info("Payout request replayed for key %s", idempotency_key)
                    return self._to_model(txn.get_payout(existing_id))

            account = txn.get_account()
            if account is None:
                raise AccountNotFoundError(f"Creator revenue account {account_id} not found")

            available = available_minor(account, txn.open_payouts())
            if amount_minor > available:
                raise InsufficientAvailableBalanceError(
                    f"Payout amount {from_minor(amount_minor, decimals)} exceeds available balance "
                    f"{from_minor(available, decimals)}"
                )

            row = {
                "id": uuid4(),
                "account_id": account_id,
                "amount_minor": amount_minor,
                "status": PayoutStatus.PENDING,
                "bank_details": (bank_details or BankDetails()).model_dump(),
                "requested_at": self.clock(),
                "processed_at": None,
                "completed_at": None,
                "notes": None,
                "sequence": self.storage.next_sequence(),
            }
            txn.put_payout(row)
            if idempotency_key:
                txn.record_idempotency("payout", idempotency_key, row["id"])

        logger.info(
            "Payout %s requested by creator %s for %s %s",
            row["id"], account_id, from_minor(amount_minor, decimals), self.settings.CURRENCY,
        )
        return self._to_model(row)

    def _locate(self, payout_id: UUID) -> UUID:
        row = self.storage.get_payout(payout_id)
        if row is None:
            raise PayoutNotFoundError(f"Payout {payout_id} not found")
        return row["account_id"]

    def _reject(self, payout: dict, action: str) -> InvalidStateTransitionError:
        logger.warning(
            "Rejected %s for payout %s in %s state", action, payout["id"], payout["status"].value,
        )
        return InvalidStateTransitionError(
            f"Cannot {action} payout {payout['id']} in {payout['status'].value} state"
        )

    def _load(self, txn: StorageTransaction, payout_id: UUID) -> dict:
        row = txn.get_payout(payout_id)
        if row is None:
            raise PayoutNotFoundError(f"Payout {payout_id} not found")
        return row

    def start_processing(self, payout_id: UUID) -> PayoutRequest:
        account_id = self._locate(payout_id)
        with self.storage.transaction(account_id) as txn:
            row = self._load(txn, payout_id)
            if not self._to_model(row).can_start():
                raise self._reject(row, "start processing")

            row["status"] = PayoutStatus.PROCESSING
            row["processed_at"] = self.clock()
            txn.put_payout(row)

        logger.info("Payout %s is processing", payout_id)
        return self._to_model(row)

    def complete_payout_request(self, payout_id: UUID) -> PayoutRequest:
        account_id = self._locate(payout_id)
        with self.storage.transaction(account_id) as txn:
            row = self._load(txn, payout_id)
            if not self._to_model(row).can_complete():
                raise self._reject(row, "complete")

            account = txn.get_account()
            if account is None:
                raise AccountNotFoundError(f"Creator revenue account {account_id} not found")

            now = self.clock()
            account["total_paid_minor"] += row["amount_minor"]
            account["updated_at"] = now
            if account["total_paid_minor"] > account["total_earnings_minor"]:
                # total_paid <= total_earnings
                raise InsufficientAvailableBalanceError(
                    f"Completing payout {payout_id} would exceed total earnings"
                )

            row["status"] = PayoutStatus.COMPLETED
            row["completed_at"] = now
            txn.put_payout(row)
            txn.put_account(account)

        logger.info("Payout %s completed for creator %s", payout_id, account_id)
        return self._to_model(row)

    def fail_payout_request(self, payout_id: UUID, reason: Optional[str] = None) -> PayoutRequest:
        account_id = self._locate(payout_id)
        with self.storage.transaction(account_id) as txn:
            row = self._load(txn, payout_id)
            if not self._to_model(row).can_fail():
                raise self._reject(row, "fail")

            now = self.clock()
            row["status"] = PayoutStatus.FAILED
            row["notes"] = reason
            if row["processed_at"] is None:
                row["processed_at"] = now
            txn.put_payout(row)

        logger.info("Payout %s failed: %s", payout_id, reason)
        return self._to_model(row)

    def get_payout_request(self, payout_id: UUID) -> PayoutRequest:
        row = self.storage.get_payout(payout_id)
        if row is None:
            raise PayoutNotFoundError(f"Payout {payout_id} not found")
        return self._to_model(row)

    def get_pending_payout_requests(self) -> list[PayoutRequest]:
        rows = self.storage.list_payouts_by_status(PayoutStatus.PENDING)
        rows.sort(key=lambda r: (r["requested_at"], r["sequence"]))
        return [self._to_model(r) for r in rows]
