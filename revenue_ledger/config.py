"""Ledger configuration loaded from environment variables."""
from decimal import Decimal
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Revenue ledger settings.

    Every field can be overridden with a ``REVENUE_LEDGER_``-prefixed
    environment variable, e.g. ``REVENUE_LEDGER_MIN_PAYOUT_THRESHOLD=25.00``.
    """

    model_config = SettingsConfigDict(
        env_prefix="REVENUE_LEDGER_",
        env_file=".env",
        extra="ignore",
    )

    # Payouts
    MIN_PAYOUT_THRESHOLD: Decimal = Field(default=Decimal("10.00"))

    # Single configured denomination; amounts are kept as integer minor units
    CURRENCY: str = "GBP"
    CURRENCY_DECIMALS: int = Field(default=2, ge=0, le=6)

    # Logging
    LOG_LEVEL: str = "INFO"

    # CORS - "*" for all origins or a comma-separated list
    CORS_ORIGINS: str = "*"

    # Seed the in-memory directory with demo creators and campaigns
    SEED_DEMO_DATA: bool = True

    @field_validator("MIN_PAYOUT_THRESHOLD", mode="before")
    @classmethod
    def coerce_float_threshold(cls, v):
        if isinstance(v, float):
            return Decimal(str(v))
        return v

    @model_validator(mode="after")
    def check_threshold(self) -> "Settings":
        threshold = self.MIN_PAYOUT_THRESHOLD
        if not threshold.is_finite() or threshold <= 0:
            raise ValueError("MIN_PAYOUT_THRESHOLD must be a positive amount")
        if threshold != threshold.quantize(Decimal(1).scaleb(-self.CURRENCY_DECIMALS)):
            raise ValueError(
                f"MIN_PAYOUT_THRESHOLD has more than {self.CURRENCY_DECIMALS} fractional digits"
            )
        return self

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        return v.upper()

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
