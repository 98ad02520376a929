import logging
from datetime import datetime
from typing import Callable, Optional, Union
from uuid import UUID, uuid4

from .config import Settings
from .directory import InMemoryDirectory
from .errors import AccountNotFoundError, CampaignNotFoundError, InvalidSourceError
from .models import RevenueEntry, RevenueSource
from .money import AmountLike, positive_minor
from .storage import InMemoryStorage, new_account_row, utc_now

logger = logging.getLogger(__name__)

# Adding a revenue source means adding an enum member and its subtotal column here
SOURCE_SUBTOTAL_FIELDS: dict[RevenueSource, str] = {
    RevenueSource.REFERRAL_BONUS: "referral_bonus_minor",
    RevenueSource.CAMPAIGN_SUCCESS: "campaign_success_fees_minor",
    RevenueSource.TIP_JAR: "tip_jar_earnings_minor",
}


def parse_source(source: Union[RevenueSource, str]) -> RevenueSource:
    if isinstance(source, RevenueSource):
        return source
    try:
        return RevenueSource(source)
    except ValueError:
        raise InvalidSourceError(
            f"Unknown revenue source {source!r}; expected one of "
            f"{', '.join(s.value for s in RevenueSource)}"
        )


class RevenueAccrualService:
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

    def add_revenue(
        self,
        account_id: UUID,
        amount: AmountLike,
        source: Union[RevenueSource, str],
        campaign_id: UUID,
        idempotency_key: Optional[str] = None,
    ) -> RevenueEntry:
        decimals = self.settings.CURRENCY_DECIMALS
        revenue_source = parse_source(source)
        amount_minor = positive_minor(amount, decimals)

        if not self.directory.creator_exists(account_id):
            raise AccountNotFoundError(f"Creator {account_id} not found")
        if not self.directory.campaign_exists(campaign_id):
            raise CampaignNotFoundError(f"Campaign {campaign_id} not found")

        with self.storage.transaction(account_id) as txn:
            if idempotency_key:
                existing_id = txn.lookup_idempotency("revenue", idempotency_key)
                if existing_id:
                    logger.info("Revenue accrual replayed for key %s", idempotency_key)
                    return RevenueEntry.from_row(self.storage.revenue_entries[existing_id], decimals)

            now = self.clock()
            account = txn.get_account() or new_account_row(account_id, now)

            subtotal_field = SOURCE_SUBTOTAL_FIELDS[revenue_source]
            account["total_earnings_minor"] += amount_minor
            account[subtotal_field] += amount_minor
            account["updated_at"] = now

            entry = {
                "id": uuid4(),
                "account_id": account_id,
                "campaign_id": campaign_id,
                "amount_minor": amount_minor,
                "source": revenue_source,
                "created_at": now,
                "sequence": self.storage.next_sequence(),
            }

            txn.put_account(account)
            txn.append_entry(entry)
            if idempotency_key:
                txn.record_idempotency("revenue", idempotency_key, entry["id"])

        result = RevenueEntry.from_row(entry, decimals)
        logger.info(
            "Accrued %s %s (%s) to creator %s from campaign %s",
            result.amount, self.settings.CURRENCY, revenue_source.value, account_id, campaign_id,
        )
        return result
