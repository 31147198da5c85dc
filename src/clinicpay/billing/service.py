"""
Checkout pricing service.

Ties the billing components together for the order-placement code: resolve
the coupon, compute the breakdown against the catalog price, and make sure a
fee price exists when a credit card fee applies. Placing the charge itself is
left to the caller.
"""

from typing import Protocol

from pydantic import BaseModel, ConfigDict

from clinicpay.billing.amounts import (
    AmountBreakdown,
    compute_breakdown,
    compute_one_time_breakdown,
    coupon_discount_terms,
)
from clinicpay.billing.cache import build_storage
from clinicpay.billing.catalog import (
    CatalogPrice,
    CouponCatalog,
    PriceCatalog,
    Recurrence,
    StripeCatalog,
)
from clinicpay.billing.config import BillingConfig, get_billing_config
from clinicpay.billing.coupons import CouponCache, CouponDetails, CouponResolver
from clinicpay.billing.exceptions import CatalogPriceMismatchError
from clinicpay.billing.fee_prices import FeePriceRegistry
from clinicpay.billing.plans import PlanType, get_subscription_plan
from clinicpay.logging import get_logger

logger = get_logger(__name__)


class CatalogClient(CouponCatalog, PriceCatalog, Protocol):
    """Catalog offering both coupon and price operations."""


class CheckoutQuote(BaseModel):
    """Everything the order-placement code needs to charge a purchase."""

    model_config = ConfigDict(frozen=True)

    plan_type: PlanType
    currency: str
    breakdown: AmountBreakdown
    applies_fee: bool
    coupon: CouponDetails | None = None
    price_id: str | None = None
    fee_price_id: str | None = None
    recurrence: Recurrence | None = None
    trial_period_days: int | None = None


class CheckoutPricingService:
    """Compute checkout quotes for one-time purchases and subscriptions."""

    def __init__(
        self,
        config: BillingConfig,
        catalog: CatalogClient,
        coupon_resolver: CouponResolver | None = None,
        fee_registry: FeePriceRegistry | None = None,
    ) -> None:
        self.config = config
        self.catalog = catalog
        self.coupon_resolver = coupon_resolver or CouponResolver(
            catalog,
            config.coupon_mappings,
            CouponCache(build_storage(config.coupon_cache_ttl_seconds)),
        )
        self.fee_registry = fee_registry or FeePriceRegistry(
            catalog,
            product_id=config.credit_card_fee_product_id,
            currency=config.currency,
            fee_percent=config.credit_card_fee_percent,
            page_size=config.fee_price_page_size,
        )

    @classmethod
    def from_settings(cls, config: BillingConfig | None = None) -> "CheckoutPricingService":
        """Build a service backed by Stripe using the global configuration."""
        from clinicpay.settings import settings

        return cls(config or get_billing_config(), StripeCatalog(settings.billing.stripe_api_key))

    def _ensure_currency(self, price: CatalogPrice) -> None:
        if price.currency.lower() != self.config.currency:
            raise CatalogPriceMismatchError(
                f"Price currency {price.currency} does not match expected {self.config.currency}",
                price_id=price.id,
                expected={"currency": self.config.currency},
            )

    async def quote_one_time(
        self,
        coupon_code: str | None = None,
        *,
        applies_fee: bool,
        base_amount: int | None = None,
    ) -> CheckoutQuote:
        """
        Quote the one-time purchase.

        Without ``base_amount`` the list price is the catalog default price
        of the one-time product.
        """
        coupon = await self.coupon_resolver.resolve(coupon_code)
        coupon_percent, coupon_amount_off = coupon_discount_terms(coupon, self.config.currency)

        price_id: str | None = None
        if base_amount is None:
            price = await self.catalog.retrieve_default_price(self.config.one_time_product_id)
            self._ensure_currency(price)
            if not price.unit_amount:
                raise CatalogPriceMismatchError(
                    "One-time price must have a unit amount.", price_id=price.id
                )
            if price.recurring is not None:
                raise CatalogPriceMismatchError(
                    "One-time price must not be recurring.",
                    price_id=price.id,
                    expected={"recurring": None},
                )
            base_amount = price.unit_amount
            price_id = price.id

        breakdown = compute_one_time_breakdown(
            self.config,
            applies_fee=applies_fee,
            coupon_percent=coupon_percent,
            coupon_amount_off=coupon_amount_off,
            base_amount=base_amount,
        )

        fee_price_id = None
        if breakdown.credit_card_fee_amount > 0:
            fee_price_id = await self.fee_registry.get_or_create_one_time_fee_price(
                breakdown.credit_card_fee_amount
            )

        logger.info(
            "checkout.quote.one_time",
            total_amount=breakdown.total_amount,
            coupon_id=coupon.coupon_id if coupon else None,
            fee_price_id=fee_price_id,
        )
        return CheckoutQuote(
            plan_type=PlanType.ONE_TIME,
            currency=self.config.currency,
            breakdown=breakdown,
            applies_fee=applies_fee,
            coupon=coupon,
            price_id=price_id,
            fee_price_id=fee_price_id,
        )

    async def quote_subscription(
        self,
        duration_years: int,
        cadence: str,
        coupon_code: str | None = None,
        *,
        applies_fee: bool,
    ) -> CheckoutQuote:
        """Quote a subscription plan; the fee price recurs with the plan price."""
        plan = get_subscription_plan(duration_years, cadence, self.config)
        price = await self.catalog.retrieve_price(plan.price_id)
        self._ensure_currency(price)
        if not price.unit_amount or price.recurring is None:
            raise CatalogPriceMismatchError(
                "Subscription price must have a recurring unit amount.",
                price_id=price.id,
                expected={"recurring": True},
            )

        coupon = await self.coupon_resolver.resolve(coupon_code)
        coupon_percent, coupon_amount_off = coupon_discount_terms(coupon, self.config.currency)

        breakdown = compute_breakdown(
            base=price.unit_amount,
            shipping=self.config.shipping_cost,
            coupon_percent=coupon_percent,
            coupon_amount_off=coupon_amount_off,
            applies_fee=applies_fee,
            fee_percent=self.config.credit_card_fee_percent,
        )

        fee_price_id = None
        if breakdown.credit_card_fee_amount > 0:
            fee_price_id = await self.fee_registry.get_or_create_fee_price(
                breakdown.credit_card_fee_amount, price.recurring
            )

        logger.info(
            "checkout.quote.subscription",
            duration_years=duration_years,
            cadence=cadence,
            total_amount=breakdown.total_amount,
            coupon_id=coupon.coupon_id if coupon else None,
            fee_price_id=fee_price_id,
        )
        return CheckoutQuote(
            plan_type=PlanType.SUBSCRIPTION,
            currency=self.config.currency,
            breakdown=breakdown,
            applies_fee=applies_fee,
            coupon=coupon,
            price_id=price.id,
            fee_price_id=fee_price_id,
            recurrence=price.recurring,
            trial_period_days=self.config.trial_period_days,
        )


__all__ = ["CatalogClient", "CheckoutQuote", "CheckoutPricingService"]
