"""Tests for the checkout pricing service."""

from unittest.mock import patch

import pytest

from clinicpay.billing.catalog import Recurrence, StripeCatalog
from clinicpay.billing.config import SubscriptionPriceIds
from clinicpay.billing.exceptions import (
    CatalogPriceMismatchError,
    MissingPriceConfigurationError,
    UnsupportedPlanError,
)
from clinicpay.billing.plans import PlanType
from clinicpay.billing.service import CheckoutPricingService
from tests.billing._fixtures.shared import FEE_PRODUCT_ID, ONE_TIME_PRODUCT_ID


@pytest.fixture
def service(billing_config, stocked_catalog):
    return CheckoutPricingService(billing_config, stocked_catalog)


@pytest.mark.unit
class TestQuoteOneTime:
    """Test one-time purchase quotes."""

    @pytest.mark.asyncio
    async def test_no_coupon_credit_card(self, service, stocked_catalog):
        """Test the list price plus shipping plus fee."""
        quote = await service.quote_one_time(applies_fee=True)

        assert quote.plan_type == PlanType.ONE_TIME
        assert quote.price_id == "price_one_time"
        assert quote.breakdown.base_amount == 5000
        assert quote.breakdown.credit_card_fee_amount == 150
        assert quote.breakdown.total_amount == 5650
        assert quote.fee_price_id is not None
        assert stocked_catalog.create_calls[0]["product_id"] == FEE_PRODUCT_ID
        assert stocked_catalog.create_calls[0]["unit_amount"] == 150
        assert stocked_catalog.create_calls[0]["recurring"] is None

    @pytest.mark.asyncio
    async def test_percent_coupon(self, service):
        """Test a percent coupon reduces the fee base as well."""
        quote = await service.quote_one_time("WELCOME10", applies_fee=True)

        assert quote.coupon.coupon_id == "coupon_pct_10"
        assert quote.breakdown.discount_amount == 500
        assert quote.breakdown.credit_card_fee_amount == 135
        assert quote.breakdown.total_amount == 5135

    @pytest.mark.asyncio
    async def test_foreign_amount_coupon_ignored(self, service):
        """Test an amount-off coupon in another currency gives no discount."""
        quote = await service.quote_one_time("euro", applies_fee=True)

        assert quote.coupon is not None
        assert quote.breakdown.discount_amount == 0
        assert quote.breakdown.total_amount == 5650

    @pytest.mark.asyncio
    async def test_unknown_coupon_ignored(self, service):
        """Test unknown codes quote at list price."""
        quote = await service.quote_one_time("bogus", applies_fee=False)

        assert quote.coupon is None
        assert quote.breakdown.total_amount == 5500

    @pytest.mark.asyncio
    async def test_no_fee_price_without_credit(self, service, stocked_catalog):
        """Test no fee price is touched when the fee does not apply."""
        quote = await service.quote_one_time(applies_fee=False)

        assert quote.fee_price_id is None
        assert stocked_catalog.list_calls == []
        assert stocked_catalog.create_calls == []

    @pytest.mark.asyncio
    async def test_full_discount_skips_fee_price(self, service, stocked_catalog):
        """Test a discount down to zero leaves no fee to price."""
        quote = await service.quote_one_time("fifty", applies_fee=True)

        assert quote.breakdown.subtotal_after_discount == 0
        assert quote.breakdown.total_amount == 500
        assert quote.fee_price_id is None
        assert stocked_catalog.create_calls == []

    @pytest.mark.asyncio
    async def test_fee_price_reused_across_quotes(self, service, stocked_catalog):
        """Test repeat quotes with the same fee share one catalog price."""
        first = await service.quote_one_time(applies_fee=True)
        second = await service.quote_one_time(applies_fee=True)

        assert first.fee_price_id == second.fee_price_id
        assert len(stocked_catalog.create_calls) == 1

    @pytest.mark.asyncio
    async def test_explicit_base_amount(self, service):
        """Test an explicit base amount skips the catalog price."""
        quote = await service.quote_one_time(applies_fee=False, base_amount=8000)

        assert quote.price_id is None
        assert quote.breakdown.total_amount == 8500

    @pytest.mark.asyncio
    async def test_recurring_default_price_rejected(self, service, stocked_catalog):
        """Test a recurring default price is a catalog mismatch."""
        stocked_catalog.add_price(
            ONE_TIME_PRODUCT_ID, 5000, recurring=Recurrence(interval="month"), price_id="price_bad"
        )
        stocked_catalog.default_prices[ONE_TIME_PRODUCT_ID] = "price_bad"

        with pytest.raises(CatalogPriceMismatchError) as exc_info:
            await service.quote_one_time(applies_fee=True)

        assert exc_info.value.context["price_id"] == "price_bad"

    @pytest.mark.asyncio
    async def test_currency_mismatch_rejected(self, service, stocked_catalog):
        """Test a default price in another currency is a catalog mismatch."""
        stocked_catalog.add_price(ONE_TIME_PRODUCT_ID, 5000, currency="eur", price_id="price_eur")
        stocked_catalog.default_prices[ONE_TIME_PRODUCT_ID] = "price_eur"

        with pytest.raises(CatalogPriceMismatchError):
            await service.quote_one_time(applies_fee=True)


@pytest.mark.unit
class TestQuoteSubscription:
    """Test subscription quotes."""

    @pytest.mark.asyncio
    async def test_annual_with_amount_coupon(self, service, stocked_catalog):
        """Test a yearly plan with a flat coupon and a recurring fee price."""
        quote = await service.quote_subscription(1, "annual", "fifty", applies_fee=True)

        assert quote.plan_type == PlanType.SUBSCRIPTION
        assert quote.price_id == "price_annual_1"
        assert quote.breakdown.discount_amount == 5000
        assert quote.breakdown.credit_card_fee_amount == 3450
        assert quote.breakdown.total_amount == 115000 + 500 + 3450
        assert quote.recurrence == Recurrence(interval="year")
        assert quote.trial_period_days == 14
        assert stocked_catalog.create_calls[0]["recurring"] == Recurrence(interval="year")
        assert stocked_catalog.create_calls[0]["unit_amount"] == 3450

    @pytest.mark.asyncio
    async def test_monthly_with_percent_coupon(self, service, stocked_catalog):
        """Test a monthly plan fee recurs monthly."""
        quote = await service.quote_subscription(1, "monthly", "spring", applies_fee=True)

        assert quote.breakdown.discount_amount == 1100
        assert quote.breakdown.credit_card_fee_amount == 297
        assert stocked_catalog.create_calls[0]["recurring"] == Recurrence(interval="month")

    @pytest.mark.asyncio
    async def test_unsupported_plan(self, service, stocked_catalog):
        """Test unsupported plans fail before any catalog call."""
        with pytest.raises(UnsupportedPlanError):
            await service.quote_subscription(5, "annual", applies_fee=True)

        assert stocked_catalog.list_calls == []

    @pytest.mark.asyncio
    async def test_missing_price_configuration(self, service):
        """Test supported plans without a price id."""
        with pytest.raises(MissingPriceConfigurationError):
            await service.quote_subscription(3, "annual", applies_fee=True)

    @pytest.mark.asyncio
    async def test_one_time_price_rejected(self, billing_config, stocked_catalog):
        """Test a plan pointing at a one-time price is a catalog mismatch."""
        config = billing_config.model_copy(
            update={"subscription_price_ids": SubscriptionPriceIds(yearly={1: "price_one_time"})}
        )
        service = CheckoutPricingService(config, stocked_catalog)

        with pytest.raises(CatalogPriceMismatchError):
            await service.quote_subscription(1, "annual", applies_fee=True)


@pytest.mark.unit
class TestServiceConstruction:
    """Test service wiring."""

    def test_coupon_cache_ttl_from_config(self, billing_config, stocked_catalog):
        """Test a configured TTL switches the coupon cache storage."""
        config = billing_config.model_copy(update={"coupon_cache_ttl_seconds": 30})
        service = CheckoutPricingService(config, stocked_catalog)

        assert service.coupon_resolver.cache.storage.ttl == 30

    def test_fee_registry_from_config(self, service):
        """Test the fee registry uses the configured product and percent."""
        assert service.fee_registry.product_id == FEE_PRODUCT_ID
        assert str(service.fee_registry.fee_percent) == "3"

    def test_from_settings_uses_stripe(self, billing_config):
        """Test the settings-backed constructor."""
        with patch("clinicpay.settings.settings") as mock_settings:
            mock_settings.billing.stripe_api_key = "sk_test_abc"
            service = CheckoutPricingService.from_settings(billing_config)

        assert isinstance(service.catalog, StripeCatalog)
        assert service.catalog.api_key == "sk_test_abc"
