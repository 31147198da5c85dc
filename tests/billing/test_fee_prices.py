"""Tests for the credit card fee price registry."""

import asyncio
from decimal import Decimal
from unittest.mock import patch

import pytest

from clinicpay.billing.catalog import CatalogPrice, Recurrence
from clinicpay.billing.exceptions import InvalidAmountError
from clinicpay.billing.fee_prices import (
    FeePriceKey,
    FeePriceRegistry,
    find_matching_prices,
    price_matches,
)
from tests.billing._fixtures.shared import FEE_PRODUCT_ID


@pytest.fixture
def registry(catalog):
    return FeePriceRegistry(catalog, FEE_PRODUCT_ID, "usd", fee_percent=Decimal("3"))


def _key(unit_amount=150, recurrence=None, currency="usd"):
    return FeePriceKey(
        product_id=FEE_PRODUCT_ID,
        currency=currency,
        unit_amount=unit_amount,
        recurrence=recurrence,
    )


@pytest.mark.unit
class TestPriceMatching:
    """Test exact fee price matching."""

    def test_one_time_matches_one_time(self):
        """Test one-time prices match one-time keys."""
        price = CatalogPrice(id="p1", currency="usd", unit_amount=150)
        assert price_matches(price, _key())

    def test_one_time_key_rejects_recurring_price(self):
        """Test a recurring price never satisfies a one-time key."""
        price = CatalogPrice(
            id="p1", currency="usd", unit_amount=150, recurring=Recurrence(interval="month")
        )
        assert not price_matches(price, _key())

    def test_recurring_key_rejects_one_time_price(self):
        """Test a one-time price never satisfies a recurring key."""
        price = CatalogPrice(id="p1", currency="usd", unit_amount=150)
        assert not price_matches(price, _key(recurrence=Recurrence(interval="month")))

    @pytest.mark.parametrize(
        "recurring",
        [
            Recurrence(interval="year", interval_count=1),
            Recurrence(interval="month", interval_count=2),
        ],
    )
    def test_recurrence_shape_must_match(self, recurring):
        """Test interval and interval count must both match."""
        price = CatalogPrice(id="p1", currency="usd", unit_amount=150, recurring=recurring)
        assert not price_matches(price, _key(recurrence=Recurrence(interval="month")))

    def test_amount_and_currency_must_match(self):
        """Test amount and currency mismatches."""
        assert not price_matches(CatalogPrice(id="p1", currency="usd", unit_amount=151), _key())
        assert not price_matches(CatalogPrice(id="p1", currency="eur", unit_amount=150), _key())

    def test_find_matching_keeps_listing_order(self):
        """Test all matches are returned in listing order."""
        prices = [
            CatalogPrice(id="a", currency="usd", unit_amount=150),
            CatalogPrice(id="b", currency="usd", unit_amount=200),
            CatalogPrice(id="c", currency="usd", unit_amount=150),
        ]
        assert [price.id for price in find_matching_prices(prices, _key())] == ["a", "c"]

    def test_keys_are_hashable(self):
        """Test equal keys hash equally."""
        month = Recurrence(interval="month")
        assert {_key(recurrence=month), _key(recurrence=Recurrence(interval="month"))} == {
            _key(recurrence=month)
        }


@pytest.mark.unit
class TestFeePriceRegistry:
    """Test FeePriceRegistry get-or-create."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [0, -1, -150])
    async def test_rejects_non_positive_amount(self, registry, catalog, amount):
        """Test zero and negative fees are rejected before any catalog call."""
        with pytest.raises(InvalidAmountError) as exc_info:
            await registry.get_or_create_one_time_fee_price(amount)

        assert exc_info.value.error_code == "INVALID_AMOUNT"
        assert exc_info.value.context["amount"] == amount
        assert catalog.list_calls == []
        assert catalog.create_calls == []

    @pytest.mark.asyncio
    async def test_creates_then_reuses(self, registry, catalog):
        """Test the second request for the same fee reuses the created price."""
        first = await registry.get_or_create_one_time_fee_price(150)
        second = await registry.get_or_create_one_time_fee_price(150)

        assert first == second
        assert len(catalog.create_calls) == 1
        assert catalog.create_calls[0] == {
            "product_id": FEE_PRODUCT_ID,
            "currency": "usd",
            "unit_amount": 150,
            "recurring": None,
            "metadata": {"fee_percent": "3"},
        }

    @pytest.mark.asyncio
    async def test_reuses_seeded_price(self, registry, catalog):
        """Test an existing exact match is returned without creating."""
        seeded = catalog.add_price(FEE_PRODUCT_ID, 150)

        assert await registry.get_or_create_one_time_fee_price(150) == seeded.id
        assert catalog.create_calls == []

    @pytest.mark.asyncio
    async def test_distinct_amounts_get_distinct_prices(self, registry, catalog):
        """Test different fee amounts never share a price."""
        first = await registry.get_or_create_one_time_fee_price(150)
        second = await registry.get_or_create_one_time_fee_price(135)

        assert first != second
        assert len(catalog.create_calls) == 2

    @pytest.mark.asyncio
    async def test_recurring_fee_matches_interval(self, registry, catalog):
        """Test a recurring fee reuses only a price with the same interval."""
        catalog.add_price(FEE_PRODUCT_ID, 3450, recurring=Recurrence(interval="month"))
        yearly = catalog.add_price(FEE_PRODUCT_ID, 3450, recurring=Recurrence(interval="year"))

        price_id = await registry.get_or_create_recurring_fee_price(3450, "year")

        assert price_id == yearly.id
        assert catalog.create_calls == []

    @pytest.mark.asyncio
    async def test_interval_count_mismatch_creates(self, registry, catalog):
        """Test a different interval count forces a new price."""
        catalog.add_price(
            FEE_PRODUCT_ID, 330, recurring=Recurrence(interval="month", interval_count=1)
        )

        await registry.get_or_create_recurring_fee_price(330, "month", interval_count=3)

        assert len(catalog.create_calls) == 1
        assert catalog.create_calls[0]["recurring"] == Recurrence(
            interval="month", interval_count=3
        )

    @pytest.mark.asyncio
    async def test_missing_interval_count_means_one(self, registry, catalog):
        """Test an omitted interval count matches a count of one."""
        existing = catalog.add_price(FEE_PRODUCT_ID, 330, recurring=Recurrence(interval="month"))

        assert await registry.get_or_create_recurring_fee_price(330, "month") == existing.id

    @pytest.mark.asyncio
    async def test_one_time_and_recurring_do_not_mix(self, registry, catalog):
        """Test one-time and recurring fees of the same amount stay separate."""
        recurring = catalog.add_price(FEE_PRODUCT_ID, 150, recurring=Recurrence(interval="year"))

        one_time = await registry.get_or_create_one_time_fee_price(150)

        assert one_time != recurring.id
        assert catalog.create_calls[0]["recurring"] is None

    @pytest.mark.asyncio
    async def test_currency_mismatch_creates(self, registry, catalog):
        """Test a price in another currency is not reused."""
        catalog.add_price(FEE_PRODUCT_ID, 150, currency="eur")

        await registry.get_or_create_one_time_fee_price(150)

        assert len(catalog.create_calls) == 1

    @pytest.mark.asyncio
    async def test_listing_filters(self, registry, catalog):
        """Test one-time lookups filter by currency and recurring lookups do not."""
        await registry.get_or_create_one_time_fee_price(150)
        await registry.get_or_create_recurring_fee_price(150, "month")

        assert catalog.list_calls == [
            {"product_id": FEE_PRODUCT_ID, "currency": "usd", "limit": 100},
            {"product_id": FEE_PRODUCT_ID, "currency": None, "limit": 100},
        ]

    @pytest.mark.asyncio
    async def test_match_beyond_first_page_is_invisible(self, registry, catalog):
        """Test a match past the first page is missed and truncation is logged."""
        for amount in range(1000, 1100):
            catalog.add_price(FEE_PRODUCT_ID, amount)
        hidden = catalog.add_price(FEE_PRODUCT_ID, 150)

        with patch("clinicpay.billing.fee_prices.logger") as mock_logger:
            price_id = await registry.get_or_create_one_time_fee_price(150)

        assert price_id != hidden.id
        assert len(catalog.create_calls) == 1
        events = [call.args[0] for call in mock_logger.warning.call_args_list]
        assert "fee_price.page_truncated" in events

    @pytest.mark.asyncio
    async def test_duplicates_logged_and_first_returned(self, registry, catalog):
        """Test duplicate entries resolve to the first listed and are reported."""
        first = catalog.add_price(FEE_PRODUCT_ID, 150)
        second = catalog.add_price(FEE_PRODUCT_ID, 150)

        with patch("clinicpay.billing.fee_prices.logger") as mock_logger:
            price_id = await registry.get_or_create_one_time_fee_price(150)

        assert price_id == first.id
        mock_logger.warning.assert_called_once()
        call = mock_logger.warning.call_args
        assert call.args[0] == "fee_price.duplicate_entries"
        assert call.kwargs["price_ids"] == [first.id, second.id]

    @pytest.mark.asyncio
    async def test_concurrent_first_requests_can_duplicate(self, registry, catalog):
        """Test concurrent misses for one key may each create a price."""
        first, second = await asyncio.gather(
            registry.get_or_create_one_time_fee_price(150),
            registry.get_or_create_one_time_fee_price(150),
        )

        assert first != second
        assert len(catalog.create_calls) == 2

    @pytest.mark.asyncio
    async def test_serialized_creates_converge(self, catalog):
        """Test the per-key lock collapses concurrent creates into one."""
        registry = FeePriceRegistry(catalog, FEE_PRODUCT_ID, "usd", serialize_creates=True)

        results = await asyncio.gather(
            *(registry.get_or_create_one_time_fee_price(150) for _ in range(5))
        )

        assert len(set(results)) == 1
        assert len(catalog.create_calls) == 1
        assert registry._locks == {}

    @pytest.mark.asyncio
    async def test_serialized_locks_released(self, catalog):
        """Test per-key locks do not accumulate across distinct fee amounts."""
        registry = FeePriceRegistry(catalog, FEE_PRODUCT_ID, "usd", serialize_creates=True)

        for amount in (150, 135, 297, 3450):
            await registry.get_or_create_one_time_fee_price(amount)
        await asyncio.gather(
            registry.get_or_create_recurring_fee_price(330, "month"),
            registry.get_or_create_recurring_fee_price(330, "month"),
            registry.get_or_create_one_time_fee_price(90),
        )

        assert registry._locks == {}
        assert registry._lock_users == {}
        assert len(catalog.create_calls) == 6

    def test_currency_normalized(self, catalog):
        """Test the registry works in lower-case currency codes."""
        registry = FeePriceRegistry(catalog, FEE_PRODUCT_ID, "USD")
        assert registry.key_for(150).currency == "usd"
