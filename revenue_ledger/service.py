from datetime import datetime
from typing import Callable, Optional, Union
from uuid import UUID

from .accrual import RevenueAccrualService
from .balance import summarize
from .config import Settings, get_settings
from .directory import InMemoryDirectory
from .errors import (
    AccountNotFoundError,
    BelowMinimumThresholdError,
    CampaignNotFoundError,
    InsufficientAvailableBalanceError,
    InvalidAmountError,
    InvalidSourceError,
    InvalidStateTransitionError,
    LedgerServiceError,
    PayoutNotFoundError,
)
from .models import (
    BankDetails,
    BreakdownEntry,
    CreatorRevenueAccount,
    EarningsSummary,
    PayoutRequest,
    ReconciliationReport,
    RevenueEntry,
    RevenueSource,
    RevenueStats,
)
from .money import AmountLike
from .payouts import PayoutRequestManager
from .reconciliation import LedgerReconciler
from .reporting import ReportingFacade
from .storage import InMemoryStorage, new_account_row, utc_now

__all__ = [
    "LedgerService",
    "LedgerServiceError",
    "InvalidAmountError",
    "InvalidSourceError",
    "AccountNotFoundError",
    "CampaignNotFoundError",
    "PayoutNotFoundError",
    "BelowMinimumThresholdError",
    "InsufficientAvailableBalanceError",
    "InvalidStateTransitionError",
]


class LedgerService:
    """Programmatic surface of the creator revenue ledger."""

    def __init__(
        self,
        storage: Optional[InMemoryStorage] = None,
        directory: Optional[InMemoryDirectory] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.settings = settings or get_settings()
        self.storage = storage or InMemoryStorage()
        self.directory = directory or InMemoryDirectory(seed=self.settings.SEED_DEMO_DATA)
        self.clock = clock

        self.accrual = RevenueAccrualService(self.storage, self.directory, self.settings, clock)
        self.payouts = PayoutRequestManager(self.storage, self.directory, self.settings, clock)
        self.reporting = ReportingFacade(self.storage, self.directory, self.settings, clock)
        self.reconciler = LedgerReconciler(self.storage, self.settings, clock)

    def _require_creator(self, account_id: UUID) -> None:
        if not self.directory.creator_exists(account_id):
            raise AccountNotFoundError(f"Creator {account_id} not found")

    def add_revenue(
        self,
        account_id: UUID,
        amount: AmountLike,
        source: Union[RevenueSource, str],
        campaign_id: UUID,
        idempotency_key: Optional[str] = None,
    ) -> RevenueEntry:
        return self.accrual.add_revenue(account_id, amount, source, campaign_id, idempotency_key)

    def calculate_earnings(self, account_id: UUID) -> EarningsSummary:
        self._require_creator(account_id)

        account, payouts = self.storage.snapshot(account_id)
        if account is None:
            # Accounts are opened lazily on the first balance query
            with self.storage.transaction(account_id) as txn:
                if txn.get_account() is None:
                    txn.put_account(new_account_row(account_id, self.clock()))
            account, payouts = self.storage.snapshot(account_id)

        return summarize(account_id, account, payouts, self.settings)

    def get_account(self, account_id: UUID) -> CreatorRevenueAccount:
        row = self.storage.get_account(account_id)
        if row is None:
            raise AccountNotFoundError(f"Creator revenue account {account_id} not found")
        return CreatorRevenueAccount.from_row(row, self.settings.CURRENCY_DECIMALS)

    def get_revenue_breakdown(self, account_id: UUID) -> list[BreakdownEntry]:
        self._require_creator(account_id)
        return self.reporting.get_revenue_breakdown(account_id)

    def get_payout_history(self, account_id: UUID) -> list[PayoutRequest]:
        self._require_creator(account_id)
        return self.reporting.get_payout_history(account_id)

    def get_revenue_stats(self, account_id: UUID) -> RevenueStats:
        self._require_creator(account_id)
        return self.reporting.get_revenue_stats(account_id)

    def request_payout(
        self,
        account_id: UUID,
        amount: AmountLike,
        bank_details: Optional[BankDetails] = None,
        idempotency_key: Optional[str] = None,
    ) -> PayoutRequest:
        return self.payouts.request_payout(account_id, amount, bank_details, idempotency_key)

    def start_payout_processing(self, payout_id: UUID) -> PayoutRequest:
        return self.payouts.start_processing(payout_id)

    def complete_payout_request(self, payout_id: UUID) -> PayoutRequest:
        return self.payouts.complete_payout_request(payout_id)

    def fail_payout_request(self, payout_id: UUID, reason: Optional[str] = None) -> PayoutRequest:
        return self.payouts.fail_payout_request(payout_id, reason)

    def get_pending_payout_requests(self) -> list[PayoutRequest]:
        return self.payouts.get_pending_payout_requests()

    def get_payout_request(self, payout_id: UUID) -> PayoutRequest:
        return self.payouts.get_payout_request(payout_id)

    def reconcile_account(self, account_id: UUID, repair: bool = False) -> ReconciliationReport:
        self._require_creator(account_id)
        return self.reconciler.reconcile_account(account_id, repair)
