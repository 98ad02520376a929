"""Read-only views for creator dashboards."""

import calendar
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable
from uuid import UUID

from .config import Settings
from .directory import InMemoryDirectory
from .models import BreakdownEntry, PayoutRequest, RevenueStats
from .money import from_minor
from .storage import InMemoryStorage, utc_now


def shift_months(moment: datetime, months: int) -> datetime:
    """Move ``moment`` by whole calendar months, clamping to the month's last day."""
    month_index = moment.year * 12 + (moment.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def trend_percentage(current_minor: int, previous_minor: int) -> float:
    # An empty previous period reports no trend rather than an infinite one
    if previous_minor == 0:
        return 0.0
    change = (Decimal(current_minor - previous_minor) / Decimal(previous_minor)) * 100
    return float(change.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


class ReportingFacade:
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

    def get_revenue_breakdown(self, account_id: UUID) -> list[BreakdownEntry]:
        decimals = self.settings.CURRENCY_DECIMALS
        rows = sorted(
            self.storage.list_entries(account_id),
            key=lambda e: (e["created_at"], e["sequence"]),
            reverse=True,
        )
        return [
            BreakdownEntry(
                id=e["id"],
                campaign_id=e["campaign_id"],
                campaign_title=self.directory.campaign_title(e["campaign_id"]),
                amount=from_minor(e["amount_minor"], decimals),
                source=e["source"],
                created_at=e["created_at"],
            )
            for e in rows
        ]

    def get_payout_history(self, account_id: UUID) -> list[PayoutRequest]:
        rows = sorted(
            self.storage.list_payouts(account_id),
            key=lambda p: (p["requested_at"], p["sequence"]),
            reverse=True,
        )
        return [
            PayoutRequest.from_row(p, self.settings.CURRENCY_DECIMALS, self.settings.CURRENCY)
            for p in rows
        ]

    def get_revenue_stats(self, account_id: UUID) -> RevenueStats:
        """Earnings over the last month and quarter, and the month-over-month trend.

        Windows are calendar-month offsets from the start of today: the last
        month is ``[today - 1 month, now]``, the previous month
        ``[today - 2 months, today - 1 month)`` and the last quarter
        ``[today - 3 months, now]``.
        """
        decimals = self.settings.CURRENCY_DECIMALS
        today = self.clock().replace(hour=0, minute=0, second=0, microsecond=0)
        last_month_start = shift_months(today, -1)
        previous_month_start = shift_months(today, -2)
        quarter_start = shift_months(today, -3)

        last_month = previous_month = last_quarter = 0
        for entry in self.storage.list_entries(account_id):
            created_at = entry["created_at"]
            if created_at >= last_month_start:
                last_month += entry["amount_minor"]
            elif created_at >= previous_month_start:
                previous_month += entry["amount_minor"]
            if created_at >= quarter_start:
                last_quarter += entry["amount_minor"]

        return RevenueStats(
            account_id=account_id,
            last_month_earnings=from_minor(last_month, decimals),
            last_quarter_earnings=from_minor(last_quarter, decimals),
            previous_month_earnings=from_minor(previous_month, decimals),
            trend_percentage=trend_percentage(last_month, previous_month),
        )
