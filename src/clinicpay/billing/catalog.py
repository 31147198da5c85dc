"""
External catalog interfaces.

The billing core only needs a handful of catalog operations: fetch a coupon,
list one page of active prices under a product, create a price and retrieve
a price. They are expressed as protocols so tests (and other processors) can
supply their own implementation; ``StripeCatalog`` is the production adapter.
"""

from collections.abc import Awaitable, Callable
from typing import Any, Literal, Protocol

import stripe
import structlog
from pydantic import BaseModel, ConfigDict, Field

from clinicpay.billing.exceptions import CatalogError, CatalogPriceMismatchError

logger = structlog.get_logger(__name__)

RecurringInterval = Literal["day", "week", "month", "year"]

DEFAULT_PAGE_SIZE = 100


class Recurrence(BaseModel):
    """Billing interval of a recurring price."""

    model_config = ConfigDict(frozen=True)

    interval: RecurringInterval
    interval_count: int = Field(1, ge=1)


class CatalogPrice(BaseModel):
    """Normalized view of a catalog price record."""

    model_config = ConfigDict(frozen=True)

    id: str
    currency: str
    unit_amount: int | None = None
    recurring: Recurrence | None = None


class PricePage(BaseModel):
    """A single page of a price listing."""

    model_config = ConfigDict(frozen=True)

    prices: list[CatalogPrice] = Field(default_factory=list)
    has_more: bool = False


class CouponRecord(BaseModel):
    """Discount shape of a catalog coupon."""

    model_config = ConfigDict(frozen=True)

    percent_off: float | None = None
    amount_off: int | None = None
    currency: str | None = None


class CouponCatalog(Protocol):
    """Read access to catalog coupons."""

    async def fetch_coupon(self, coupon_id: str) -> CouponRecord:
        """Fetch the discount shape of a coupon."""
        ...


class PriceCatalog(Protocol):
    """Price operations the billing core relies on."""

    async def list_active_prices(
        self,
        product_id: str,
        *,
        currency: str | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> PricePage:
        """Return the first page of active prices under a product."""
        ...

    async def create_price(
        self,
        product_id: str,
        *,
        currency: str,
        unit_amount: int,
        recurring: Recurrence | None = None,
        metadata: dict[str, str] | None = None,
    ) -> CatalogPrice:
        """Create a price under a product."""
        ...

    async def retrieve_price(self, price_id: str) -> CatalogPrice:
        """Retrieve a single price."""
        ...

    async def retrieve_default_price(self, product_id: str) -> CatalogPrice:
        """Retrieve the default price of a product."""
        ...


def price_from_stripe(price: Any) -> CatalogPrice:
    """Convert a Stripe price object into a CatalogPrice."""
    recurring = getattr(price, "recurring", None)
    recurrence = None
    if recurring:
        recurrence = Recurrence(
            interval=recurring.interval,
            interval_count=getattr(recurring, "interval_count", None) or 1,
        )
    return CatalogPrice(
        id=price.id,
        currency=price.currency,
        unit_amount=getattr(price, "unit_amount", None),
        recurring=recurrence,
    )


class StripeCatalog:
    """CouponCatalog and PriceCatalog backed by the Stripe API."""

    def __init__(self, api_key: str) -> None:
        self.api_key = api_key

    async def _request(
        self,
        operation: str,
        call: Callable[..., Awaitable[Any]],
        *args: Any,
        **params: Any,
    ) -> Any:
        try:
            return await call(*args, api_key=self.api_key, **params)
        except stripe.StripeError as e:
            logger.error("Catalog request failed", operation=operation, error=str(e))
            raise CatalogError(
                f"Catalog request {operation} failed: {e}",
                operation=operation,
                context={"params": {k: v for k, v in params.items() if k != "metadata"}},
            ) from e

    async def fetch_coupon(self, coupon_id: str) -> CouponRecord:
        coupon = await self._request("coupons.retrieve", stripe.Coupon.retrieve_async, coupon_id)
        return CouponRecord(
            percent_off=getattr(coupon, "percent_off", None),
            amount_off=getattr(coupon, "amount_off", None),
            currency=getattr(coupon, "currency", None),
        )

    async def list_active_prices(
        self,
        product_id: str,
        *,
        currency: str | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> PricePage:
        params: dict[str, Any] = {"product": product_id, "active": True, "limit": limit}
        if currency:
            params["currency"] = currency

        result = await self._request("prices.list", stripe.Price.list_async, **params)
        return PricePage(
            prices=[price_from_stripe(price) for price in result.data],
            has_more=bool(getattr(result, "has_more", False)),
        )

    async def create_price(
        self,
        product_id: str,
        *,
        currency: str,
        unit_amount: int,
        recurring: Recurrence | None = None,
        metadata: dict[str, str] | None = None,
    ) -> CatalogPrice:
        params: dict[str, Any] = {
            "product": product_id,
            "currency": currency,
            "unit_amount": unit_amount,
        }
        if recurring is not None:
            params["recurring"] = {
                "interval": recurring.interval,
                "interval_count": recurring.interval_count,
            }
        if metadata:
            params["metadata"] = metadata

        price = await self._request("prices.create", stripe.Price.create_async, **params)
        return price_from_stripe(price)

    async def retrieve_price(self, price_id: str) -> CatalogPrice:
        price = await self._request("prices.retrieve", stripe.Price.retrieve_async, price_id)
        return price_from_stripe(price)

    async def retrieve_default_price(self, product_id: str) -> CatalogPrice:
        product = await self._request(
            "products.retrieve", stripe.Product.retrieve_async, product_id
        )
        default_price = getattr(product, "default_price", None)
        if not default_price:
            raise CatalogPriceMismatchError(
                f"Product {product_id} has no default price", expected={"product": product_id}
            )
        if isinstance(default_price, str):
            return await self.retrieve_price(default_price)
        return price_from_stripe(default_price)


__all__ = [
    "DEFAULT_PAGE_SIZE",
    "RecurringInterval",
    "Recurrence",
    "CatalogPrice",
    "PricePage",
    "CouponRecord",
    "CouponCatalog",
    "PriceCatalog",
    "price_from_stripe",
    "StripeCatalog",
]
