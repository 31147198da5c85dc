"""Subscription plan table."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict

from clinicpay.billing.config import BillingConfig
from clinicpay.billing.exceptions import MissingPriceConfigurationError, UnsupportedPlanError

BillingCadence = Literal["monthly", "annual"]

SUPPORTED_DURATIONS: tuple[int, ...] = (1, 2, 3)
SUPPORTED_CADENCES: tuple[str, ...] = ("annual", "monthly")


class PlanType(str, Enum):
    """Kinds of purchase."""

    ONE_TIME = "one_time"
    SUBSCRIPTION = "subscription"


class SubscriptionPlan(BaseModel):
    """A subscription offering and its catalog price."""

    model_config = ConfigDict(frozen=True)

    duration_years: int
    cadence: BillingCadence
    price_id: str


def _config_key(duration_years: int, cadence: str) -> str:
    label = "YEARLY" if cadence == "annual" else "MONTHLY"
    return f"SUBSCRIPTION_PRICE_ID_{label}_{duration_years}"


def get_subscription_plan(
    duration_years: int, cadence: str, config: BillingConfig
) -> SubscriptionPlan:
    """
    Look up the plan for a duration and cadence.

    Raises:
        UnsupportedPlanError: the combination is not offered
        MissingPriceConfigurationError: the plan has no catalog price id configured
    """
    if duration_years not in SUPPORTED_DURATIONS or cadence not in SUPPORTED_CADENCES:
        raise UnsupportedPlanError(
            f"Unsupported subscription plan: {duration_years} years, {cadence}",
            duration_years=duration_years,
            cadence=cadence,
        )

    prices = (
        config.subscription_price_ids.yearly
        if cadence == "annual"
        else config.subscription_price_ids.monthly
    )
    price_id = prices.get(duration_years)
    if not price_id:
        raise MissingPriceConfigurationError(
            f"Missing catalog price ID for subscription plan: {duration_years}-year {cadence}",
            config_key=_config_key(duration_years, cadence),
        )

    return SubscriptionPlan(duration_years=duration_years, cadence=cadence, price_id=price_id)


__all__ = [
    "BillingCadence",
    "PlanType",
    "SubscriptionPlan",
    "SUPPORTED_DURATIONS",
    "SUPPORTED_CADENCES",
    "get_subscription_plan",
]
