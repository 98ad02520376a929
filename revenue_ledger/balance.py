"""
Balance Calculator

Pure derivations over an account summary row and the account's open payout
requests. Nothing here reads or writes storage.
"""

from typing import Iterable, Optional
from uuid import UUID

from .config import Settings
from .models import OPEN_PAYOUT_STATUSES, EarningsSummary
from .money import from_minor, to_minor


def reserved_minor(payout_rows: Iterable[dict]) -> int:
    """Sum of amounts tied up in PENDING or PROCESSING payout requests."""
    return sum(p["amount_minor"] for p in payout_rows if p["status"] in OPEN_PAYOUT_STATUSES)


def pending_minor(account_row: Optional[dict]) -> int:
    if account_row is None:
        return 0
    return account_row["total_earnings_minor"] - account_row["total_paid_minor"]


def available_minor(account_row: Optional[dict], payout_rows: Iterable[dict]) -> int:
    """What can still be requested: pending minus reservations, floored at zero."""
    return max(pending_minor(account_row) - reserved_minor(payout_rows), 0)


def summarize(
    account_id: UUID,
    account_row: Optional[dict],
    payout_rows: Iterable[dict],
    settings: Settings,
) -> EarningsSummary:
    decimals = settings.CURRENCY_DECIMALS
    payout_rows = list(payout_rows)
    row = account_row or {}

    reserved = reserved_minor(payout_rows)
    available = available_minor(account_row, payout_rows)
    threshold = to_minor(settings.MIN_PAYOUT_THRESHOLD, decimals)

    return EarningsSummary(
        account_id=account_id,
        currency=settings.CURRENCY,
        total_earnings=from_minor(row.get("total_earnings_minor", 0), decimals),
        referral_bonus=from_minor(row.get("referral_bonus_minor", 0), decimals),
        campaign_success_fees=from_minor(row.get("campaign_success_fees_minor", 0), decimals),
        tip_jar_earnings=from_minor(row.get("tip_jar_earnings_minor", 0), decimals),
        total_paid=from_minor(row.get("total_paid_minor", 0), decimals),
        total_pending=from_minor(pending_minor(account_row), decimals),
        reserved_for_open_requests=from_minor(reserved, decimals),
        available_for_payout=from_minor(available, decimals),
        minimum_payout=from_minor(threshold, decimals),
        can_request_payout=available >= threshold,
    )
