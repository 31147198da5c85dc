"""
Credit card fee price registry.

Fee amounts are derived per purchase, but each distinct fee must map to one
stable price in the catalog. The registry lists the first page of active
prices under the fee product, matches on the exact fee key and creates a new
price only when nothing matches.

The list-then-create sequence is not atomic. Two concurrent requests for the
same key can both miss and both create, leaving two catalog prices for one
key. A match beyond the first page is also invisible and produces a
duplicate. Both situations are logged as warnings when they become
observable. ``serialize_creates=True`` adds a process-local lock per key,
which suppresses duplicates within a single process only. A lock lives
only while some caller holds or awaits it.
"""

import asyncio
from collections.abc import Iterable
from decimal import Decimal

import structlog
from pydantic import BaseModel, ConfigDict

from clinicpay.billing.catalog import (
    DEFAULT_PAGE_SIZE,
    CatalogPrice,
    PriceCatalog,
    Recurrence,
    RecurringInterval,
)
from clinicpay.billing.exceptions import InvalidAmountError

logger = structlog.get_logger(__name__)


class FeePriceKey(BaseModel):
    """Attributes that must match exactly for two fee prices to be the same entry."""

    model_config = ConfigDict(frozen=True)

    product_id: str
    currency: str
    unit_amount: int
    recurrence: Recurrence | None = None

    @property
    def is_one_time(self) -> bool:
        return self.recurrence is None

    def log_context(self) -> dict[str, object]:
        return {
            "product_id": self.product_id,
            "currency": self.currency,
            "unit_amount": self.unit_amount,
            "interval": self.recurrence.interval if self.recurrence else None,
            "interval_count": self.recurrence.interval_count if self.recurrence else None,
        }


def price_matches(price: CatalogPrice, key: FeePriceKey) -> bool:
    """Exact match on currency, unit amount and recurrence shape."""
    if price.currency != key.currency:
        return False
    if price.unit_amount != key.unit_amount:
        return False
    if key.recurrence is None:
        # One-time keys only match prices without any recurrence
        return price.recurring is None
    if price.recurring is None:
        return False
    return (
        price.recurring.interval == key.recurrence.interval
        and price.recurring.interval_count == key.recurrence.interval_count
    )


def find_matching_prices(prices: Iterable[CatalogPrice], key: FeePriceKey) -> list[CatalogPrice]:
    """All prices in listing order that match the key."""
    return [price for price in prices if price_matches(price, key)]


class FeePriceRegistry:
    """Idempotent get-or-create of credit card fee prices."""

    def __init__(
        self,
        catalog: PriceCatalog,
        product_id: str,
        currency: str,
        fee_percent: Decimal | int = 0,
        page_size: int = DEFAULT_PAGE_SIZE,
        serialize_creates: bool = False,
    ) -> None:
        self.catalog = catalog
        self.product_id = product_id
        self.currency = currency.lower()
        self.fee_percent = fee_percent
        self.page_size = page_size
        self.serialize_creates = serialize_creates
        self._locks: dict[FeePriceKey, asyncio.Lock] = {}
        self._lock_users: dict[FeePriceKey, int] = {}

    def key_for(self, fee_amount: int, recurrence: Recurrence | None = None) -> FeePriceKey:
        return FeePriceKey(
            product_id=self.product_id,
            currency=self.currency,
            unit_amount=fee_amount,
            recurrence=recurrence,
        )

    async def get_or_create_fee_price(
        self, fee_amount: int, recurrence: Recurrence | None = None
    ) -> str:
        """
        Return the catalog price id for a fee, creating the price if needed.

        Args:
            fee_amount: Fee in minor units, must be positive
            recurrence: Billing interval for subscription fees, None for one-time

        Raises:
            InvalidAmountError: fee_amount is zero or negative
        """
        if fee_amount <= 0:
            raise InvalidAmountError("Fee amount must be greater than 0", amount=fee_amount)

        key = self.key_for(fee_amount, recurrence)
        if not self.serialize_creates:
            return await self._get_or_create(key)

        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                return await self._get_or_create(key)
        finally:
            # Drop the lock once no caller holds or awaits it
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._locks[key]

    async def get_or_create_recurring_fee_price(
        self, fee_amount: int, interval: RecurringInterval, interval_count: int | None = None
    ) -> str:
        """Recurring variant; a missing interval count means 1."""
        recurrence = Recurrence(interval=interval, interval_count=interval_count or 1)
        return await self.get_or_create_fee_price(fee_amount, recurrence)

    async def get_or_create_one_time_fee_price(self, fee_amount: int) -> str:
        """One-time variant."""
        return await self.get_or_create_fee_price(fee_amount, None)

    async def find_existing(self, key: FeePriceKey) -> CatalogPrice | None:
        """Scan the first page of active fee prices for an exact match."""
        # One-time lookups narrow the listing by currency as well
        page = await self.catalog.list_active_prices(
            key.product_id,
            currency=key.currency if key.is_one_time else None,
            limit=self.page_size,
        )
        matches = find_matching_prices(page.prices, key)

        if len(matches) > 1:
            logger.warning(
                "fee_price.duplicate_entries",
                price_ids=[price.id for price in matches],
                **key.log_context(),
            )
        if not matches and (page.has_more or len(page.prices) >= self.page_size):
            logger.warning(
                "fee_price.page_truncated",
                scanned=len(page.prices),
                **key.log_context(),
            )

        return matches[0] if matches else None

    async def _get_or_create(self, key: FeePriceKey) -> str:
        existing = await self.find_existing(key)
        if existing is not None:
            logger.debug("fee_price.reused", price_id=existing.id, **key.log_context())
            return existing.id

        created = await self.catalog.create_price(
            key.product_id,
            currency=key.currency,
            unit_amount=key.unit_amount,
            recurring=key.recurrence,
            metadata={"fee_percent": str(self.fee_percent)},
        )
        logger.info("fee_price.created", price_id=created.id, **key.log_context())
        return created.id


__all__ = [
    "FeePriceKey",
    "FeePriceRegistry",
    "price_matches",
    "find_matching_prices",
]
