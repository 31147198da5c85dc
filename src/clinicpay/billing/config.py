"""
Billing module configuration.

Static configuration is loaded once at process start and treated as
immutable afterwards. Secrets come from ``clinicpay.settings``; everything
else is read from flat environment variables.
"""

import os
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from clinicpay.billing.money_utils import validate_currency


class SubscriptionPriceIds(BaseModel):
    """Catalog price ids per plan duration (years), split by billing cadence."""

    model_config = ConfigDict(frozen=True)

    yearly: dict[int, str | None] = Field(default_factory=dict)
    monthly: dict[int, str | None] = Field(default_factory=dict)


def parse_coupon_codes(raw: str | None) -> dict[str, str]:
    """
    Parse ``code:coupon_id|code:coupon_id`` into a lower-cased lookup table.

    Blank entries and entries missing either side are skipped.
    """
    mappings: dict[str, str] = {}
    for entry in (raw or "").split("|"):
        entry = entry.strip()
        if not entry:
            continue
        parts = entry.split(":")
        code = parts[0]
        value = parts[1] if len(parts) > 1 else ""
        if not code or not value:
            continue
        mappings[code.lower()] = value
    return mappings


def _optional_env(name: str) -> str | None:
    return os.getenv(name) or None


class BillingConfig(BaseModel):
    """Main billing configuration"""

    model_config = ConfigDict(frozen=True)

    # Amounts (minor units)
    shipping_cost: int = Field(0, ge=0, description="Flat shipping add-on in minor units")
    one_time_base_amount: int = Field(
        5000, ge=0, description="List price of the one-time purchase in minor units"
    )
    credit_card_fee_percent: Decimal = Field(
        Decimal("3"), ge=0, description="Surcharge percent applied to credit funding"
    )
    currency: str = Field("usd", description="Working currency (ISO 4217, lower-case)")

    # Catalog identifiers
    credit_card_fee_product_id: str = Field(
        ..., min_length=1, description="Catalog product holding fee prices"
    )
    one_time_product_id: str = Field(
        ..., min_length=1, description="Catalog product sold as a one-time purchase"
    )
    subscription_price_ids: SubscriptionPriceIds = Field(default_factory=SubscriptionPriceIds)

    # Coupons
    coupon_mappings: dict[str, str] = Field(
        default_factory=dict, description="Lower-cased coupon code to catalog coupon id"
    )
    coupon_cache_ttl_seconds: int | None = Field(
        None, gt=0, description="Expire cached coupon details; None keeps them forever"
    )

    # Fee price registry
    fee_price_page_size: int = Field(
        100, gt=0, le=100, description="Prices scanned per fee price lookup"
    )

    trial_period_days: int = Field(14, ge=0, description="Trial period for new subscriptions")

    @field_validator("currency")
    @classmethod
    def _normalize_currency(cls, v: str) -> str:
        validate_currency(v)
        return v.lower()

    @field_validator("coupon_mappings")
    @classmethod
    def _lowercase_codes(cls, v: dict[str, str]) -> dict[str, str]:
        return {code.lower(): coupon_id for code, coupon_id in v.items()}

    @classmethod
    def from_env(cls) -> "BillingConfig":
        """Create configuration from environment variables and settings."""

        from clinicpay.settings import settings

        config_dict: dict[str, Any] = {
            "shipping_cost": int(os.getenv("SHIPPING_COST", "0")),
            "currency": os.getenv("CURRENCY", "usd"),
            "credit_card_fee_percent": Decimal(os.getenv("CREDIT_CARD_FEE_PERCENT", "3")),
            "one_time_base_amount": int(os.getenv("ONE_TIME_BASE_AMOUNT", "5000")),
            "coupon_mappings": parse_coupon_codes(os.getenv("COUPON_CODES")),
            "credit_card_fee_product_id": os.getenv("CREDIT_CARD_FEE_PRODUCT_ID", ""),
            "one_time_product_id": os.getenv("ONE_TIME_PRODUCT_ID", ""),
            "trial_period_days": settings.billing.default_trial_days,
        }

        config_dict["subscription_price_ids"] = SubscriptionPriceIds(
            yearly={
                years: _optional_env(f"SUBSCRIPTION_PRICE_ID_YEARLY_{years}")
                for years in (1, 2, 3)
            },
            monthly={
                years: _optional_env(f"SUBSCRIPTION_PRICE_ID_MONTHLY_{years}")
                for years in (1, 2, 3)
            },
        )

        ttl = os.getenv("COUPON_CACHE_TTL_SECONDS")
        if ttl:
            config_dict["coupon_cache_ttl_seconds"] = int(ttl)

        return cls(**config_dict)


# Global configuration instance
_billing_config: BillingConfig | None = None


def get_billing_config() -> BillingConfig:
    """Get the global billing configuration instance"""
    global _billing_config
    if _billing_config is None:
        _billing_config = BillingConfig.from_env()
    return _billing_config


def set_billing_config(config: BillingConfig | None) -> None:
    """Set the global billing configuration instance"""
    global _billing_config
    _billing_config = config
