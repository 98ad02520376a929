from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, Field, ConfigDict

from .money import from_minor


class RevenueSource(str, Enum):
    REFERRAL_BONUS = "REFERRAL_BONUS"
    CAMPAIGN_SUCCESS = "CAMPAIGN_SUCCESS"
    TIP_JAR = "TIP_JAR"


class PayoutStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


OPEN_PAYOUT_STATUSES = frozenset({PayoutStatus.PENDING, PayoutStatus.PROCESSING})
TERMINAL_PAYOUT_STATUSES = frozenset({PayoutStatus.COMPLETED, PayoutStatus.FAILED})


class BankDetails(BaseModel):
    bank_name: Optional[str] = None
    account_holder: Optional[str] = None
    account_number: Optional[str] = None
    sort_code: Optional[str] = None
    iban_code: Optional[str] = None
    swift_code: Optional[str] = None

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "bank_name": "Northbank",
            "account_holder": "Alex Creator",
            "account_number": "12345678",
            "sort_code": "12-34-56",
        }
    })


class BankDetailsView(BaseModel):
    """Bank details as handed to the payout processor; the account number is masked."""
    bank_name: Optional[str] = None
    account_holder: Optional[str] = None
    masked_account_number: Optional[str] = None
    sort_code: Optional[str] = None
    iban_code: Optional[str] = None
    swift_code: Optional[str] = None

    @classmethod
    def from_details(cls, details: dict) -> "BankDetailsView":
        number = details.get("account_number")
        masked = None
        if number:
            masked = "*" * max(len(number) - 4, 0) + number[-4:]
        return cls(
            bank_name=details.get("bank_name"),
            account_holder=details.get("account_holder"),
            masked_account_number=masked,
            sort_code=details.get("sort_code"),
            iban_code=details.get("iban_code"),
            swift_code=details.get("swift_code"),
        )


class AddRevenueRequest(BaseModel):
    account_id: UUID
    campaign_id: UUID
    amount: Decimal
    # Validated by the accrual service so unknown tags map to InvalidSourceError
    source: str
    idempotency_key: Optional[str] = Field(default=None, description="Replay-safe key from the accrual trigger")

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "account_id": "550e8400-e29b-41d4-a716-446655440000",
            "campaign_id": "33333333-3333-3333-3333-333333333333",
            "amount": "25.00",
            "source": "CAMPAIGN_SUCCESS",
            "idempotency_key": "campaign-333-success",
        }
    })


class RequestPayoutRequest(BaseModel):
    amount: Decimal
    bank_details: BankDetails = Field(default_factory=BankDetails)
    idempotency_key: Optional[str] = Field(default=None, description="Unique key to prevent duplicate requests")


class FailPayoutRequest(BaseModel):
    reason: str = Field(..., description="Failure reason reported by the processor")


class CreatorRevenueAccount(BaseModel):
    account_id: UUID
    total_earnings: Decimal
    total_paid: Decimal
    referral_bonus: Decimal
    campaign_success_fees: Decimal
    tip_jar_earnings: Decimal
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @property
    def total_pending(self) -> Decimal:
        return self.total_earnings - self.total_paid

    @classmethod
    def from_row(cls, row: dict, decimals: int) -> "CreatorRevenueAccount":
        return cls(
            account_id=row["account_id"],
            total_earnings=from_minor(row["total_earnings_minor"], decimals),
            total_paid=from_minor(row["total_paid_minor"], decimals),
            referral_bonus=from_minor(row["referral_bonus_minor"], decimals),
            campaign_success_fees=from_minor(row["campaign_success_fees_minor"], decimals),
            tip_jar_earnings=from_minor(row["tip_jar_earnings_minor"], decimals),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )


class RevenueEntry(BaseModel):
    id: UUID
    account_id: UUID
    campaign_id: UUID
    amount: Decimal
    source: RevenueSource
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_row(cls, row: dict, decimals: int) -> "RevenueEntry":
        return cls(
            id=row["id"],
            account_id=row["account_id"],
            campaign_id=row["campaign_id"],
            amount=from_minor(row["amount_minor"], decimals),
            source=row["source"],
            created_at=row["created_at"],
        )


class BreakdownEntry(BaseModel):
    id: UUID
    campaign_id: UUID
    campaign_title: Optional[str] = None
    amount: Decimal
    source: RevenueSource
    created_at: datetime


class PayoutRequest(BaseModel):
    id: UUID
    account_id: UUID
    amount: Decimal
    currency: str
    status: PayoutStatus
    bank_details: BankDetailsView
    requested_at: datetime
    processed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    def can_start(self) -> bool:
        return self.status == PayoutStatus.PENDING

    def can_complete(self) -> bool:
        return self.status == PayoutStatus.PROCESSING

    def can_fail(self) -> bool:
        return self.status not in TERMINAL_PAYOUT_STATUSES

    @classmethod
    def from_row(cls, row: dict, decimals: int, currency: str) -> "PayoutRequest":
        return cls(
            id=row["id"],
            account_id=row["account_id"],
            amount=from_minor(row["amount_minor"], decimals),
            currency=currency,
            status=row["status"],
            bank_details=BankDetailsView.from_details(row["bank_details"]),
            requested_at=row["requested_at"],
            processed_at=row["processed_at"],
            completed_at=row["completed_at"],
            notes=row["notes"],
        )


class EarningsSummary(BaseModel):
    account_id: UUID
    currency: str
    total_earnings: Decimal
    referral_bonus: Decimal
    campaign_success_fees: Decimal
    tip_jar_earnings: Decimal
    total_paid: Decimal
    total_pending: Decimal
    reserved_for_open_requests: Decimal
    available_for_payout: Decimal
    minimum_payout: Decimal
    can_request_payout: bool

    @property
    def per_source(self) -> dict[RevenueSource, Decimal]:
        return {
            RevenueSource.REFERRAL_BONUS: self.referral_bonus,
            RevenueSource.CAMPAIGN_SUCCESS: self.campaign_success_fees,
            RevenueSource.TIP_JAR: self.tip_jar_earnings,
        }


class RevenueStats(BaseModel):
    account_id: UUID
    last_month_earnings: Decimal
    last_quarter_earnings: Decimal
    previous_month_earnings: Decimal
    trend_percentage: float


class RevenueOverview(BaseModel):
    earnings: EarningsSummary
    stats: Optional[RevenueStats] = None


class RevenueEntryResponse(BaseModel):
    entry: RevenueEntry
    message: str


class PayoutResponse(BaseModel):
    payout: PayoutRequest
    message: str


class FieldDrift(BaseModel):
    field: str
    cached: Decimal
    recomputed: Decimal


class ReconciliationReport(BaseModel):
    account_id: UUID
    consistent: bool
    drifts: list[FieldDrift] = Field(default_factory=list)
    repaired: bool = False
    checked_at: datetime
