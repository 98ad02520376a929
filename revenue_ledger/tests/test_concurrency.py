"""
Concurrency tests for payout requests.

Payout requests for one creator are serialized by the account's writer lock,
so concurrent requests can never jointly overdraw the available balance.
Different creators never wait on each other.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from uuid import UUID

import pytest

from revenue_ledger.config import Settings
from revenue_ledger.models import PayoutRequest, PayoutStatus, RevenueSource
from revenue_ledger.service import LedgerService, InsufficientAvailableBalanceError


CREATOR_ID = UUID("550e8400-e29b-41d4-a716-446655440000")
SECOND_CREATOR_ID = UUID("660e8400-e29b-41d4-a716-446655440001")
CAMPAIGN_ID = UUID("33333333-3333-3333-3333-333333333333")
SECOND_CAMPAIGN_ID = UUID("44444444-4444-4444-4444-444444444444")


def make_service() -> LedgerService:
    return LedgerService(settings=Settings(MIN_PAYOUT_THRESHOLD=Decimal("10.00"), SEED_DEMO_DATA=True))


def run_simultaneously(count, fn):
    barrier = threading.Barrier(count)

    def attempt(_):
        barrier.wait(timeout=5)
        try:
            return fn()
        except InsufficientAvailableBalanceError as e:
            return e

    with ThreadPoolExecutor(max_workers=count) as pool:
        return list(pool.map(attempt, range(count)))


class TestConcurrentPayoutRequests:

    @pytest.mark.parametrize("attempt", range(10))
    def test_two_requests_cannot_both_succeed(self, attempt):
        service = make_service()
        service.add_revenue(CREATOR_ID, Decimal("25.00"), RevenueSource.CAMPAIGN_SUCCESS, CAMPAIGN_ID)

        results = run_simultaneously(2, lambda: service.request_payout(CREATOR_ID, Decimal("20.00")))

        successes = [r for r in results if isinstance(r, PayoutRequest)]
        failures = [r for r in results if isinstance(r, InsufficientAvailableBalanceError)]
        assert len(successes) == 1
        assert len(failures) == 1

        earnings = service.calculate_earnings(CREATOR_ID)
        assert earnings.reserved_for_open_requests == Decimal("20.00")
        assert earnings.available_for_payout == Decimal("5.00")

    def test_exactly_as_many_as_fit_succeed(self):
        service = make_service()
        service.add_revenue(CREATOR_ID, Decimal("105.00"), RevenueSource.TIP_JAR, CAMPAIGN_ID)

        results = run_simultaneously(20, lambda: service.request_payout(CREATOR_ID, Decimal("10.00")))

        successes = [r for r in results if isinstance(r, PayoutRequest)]
        assert len(successes) == 10
        assert len(service.get_pending_payout_requests()) == 10
        assert service.calculate_earnings(CREATOR_ID).available_for_payout == Decimal("5.00")

    def test_concurrent_accruals_and_completions_stay_consistent(self):
        service = make_service()
        service.add_revenue(CREATOR_ID, Decimal("100.00"), RevenueSource.CAMPAIGN_SUCCESS, CAMPAIGN_ID)
        payouts = [service.request_payout(CREATOR_ID, Decimal("10.00")) for _ in range(5)]
        for payout in payouts:
            service.start_payout_processing(payout.id)

        def accrue():
            service.add_revenue(CREATOR_ID, Decimal("1.00"), RevenueSource.TIP_JAR, CAMPAIGN_ID)

        with ThreadPoolExecutor(max_workers=8) as pool:
            futures = [pool.submit(accrue) for _ in range(20)]
            futures += [pool.submit(service.complete_payout_request, p.id) for p in payouts]
            for future in futures:
                future.result(timeout=10)

        account = service.get_account(CREATOR_ID)
        assert account.total_earnings == Decimal("120.00")
        assert account.tip_jar_earnings == Decimal("20.00")
        assert account.total_paid == Decimal("50.00")
        assert all(
            p.status == PayoutStatus.COMPLETED for p in service.get_payout_history(CREATOR_ID)
        )
        assert service.reconcile_account(CREATOR_ID).consistent is True

    def test_accounts_do_not_block_each_other(self):
        service = make_service()
        entered = threading.Event()
        release = threading.Event()

        def hold_first_account():
            with service.storage.transaction(CREATOR_ID):
                entered.set()
                release.wait(timeout=10)

        holder = threading.Thread(target=hold_first_account)
        holder.start()
        try:
            assert entered.wait(timeout=5)
            with ThreadPoolExecutor(max_workers=1) as pool:
                future = pool.submit(
                    service.add_revenue,
                    SECOND_CREATOR_ID, Decimal("12.00"), RevenueSource.TIP_JAR, SECOND_CAMPAIGN_ID,
                )
                entry = future.result(timeout=5)
            assert entry.amount == Decimal("12.00")
        finally:
            release.set()
            holder.join(timeout=5)
