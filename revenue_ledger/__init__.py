"""
Creator Revenue Ledger

This package provides:
- An append-only revenue log with per-creator cached totals
- Earnings and available-balance calculation
- Payout request lifecycle: pending → processing → completed / failed
- Reservation of in-flight payout amounts against the available balance
- Reporting views and ledger reconciliation
"""

from .models import (
    RevenueSource,
    PayoutStatus,
    BankDetails,
    CreatorRevenueAccount,
    RevenueEntry,
    PayoutRequest,
    EarningsSummary,
    RevenueStats,
)
from .service import LedgerService

__all__ = [
    "RevenueSource",
    "PayoutStatus",
    "BankDetails",
    "CreatorRevenueAccount",
    "RevenueEntry",
    "PayoutRequest",
    "EarningsSummary",
    "RevenueStats",
    "LedgerService",
]
