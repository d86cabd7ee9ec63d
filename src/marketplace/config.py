"""Business settings for the marketplace.

Framework wiring (databases, brokers) lives in ``domain.toml``. The values
here are the commercial knobs: commission rates applied to new orders, the
crate deposit price table and the payout approval policy. Every field can be
overridden through a ``MARKETPLACE_``-prefixed environment variable, e.g.
``MARKETPLACE_REQUIRE_TRANSFER_APPROVAL=false``.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIRMATION_CODE_LENGTH = 8

TRANSFER_METHODS = ("bank_transfer", "mobile_money", "cash")


def _default_deposit_prices() -> dict[str, int]:
    return {"C24": 3000, "C12": 3000, "C12V": 4000, "C6": 2000}


class MarketplaceSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="MARKETPLACE_",
        env_file=".env",
        extra="ignore",
    )

    client_commission_rate: float = Field(default=8.0, ge=0, le=100)
    supplier_commission_rate: float = Field(default=2.0, ge=0, le=100)
    crate_deposit_prices: dict[str, int] = Field(default_factory=_default_deposit_prices)
    require_transfer_approval: bool = True
    default_transfer_method: str = "bank_transfer"

    @field_validator("crate_deposit_prices")
    @classmethod
    def deposit_prices_must_be_positive(cls, value: dict[str, int]) -> dict[str, int]:
        if not value:
            raise ValueError("at least one crate type must carry a deposit price")
        for crate_type, price in value.items():
            if price < 0:
                raise ValueError(f"deposit price for {crate_type} must not be negative")
        return value

    @field_validator("default_transfer_method")
    @classmethod
    def transfer_method_must_be_known(cls, value: str) -> str:
        if value not in TRANSFER_METHODS:
            raise ValueError(f"unknown transfer method {value!r}")
        return value

    @property
    def crate_types(self) -> tuple[str, ...]:
        """Crate types tracked by the deposit ledger, in display order."""
        return tuple(self.crate_deposit_prices)


@lru_cache
def get_settings() -> MarketplaceSettings:
    return MarketplaceSettings()
