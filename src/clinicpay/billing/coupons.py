"""
Coupon code resolution.

Human-entered codes are mapped to catalog coupon ids through static
configuration, then the coupon's discount shape is fetched once per id and
kept for the life of the process.
"""

from collections.abc import Mapping, MutableMapping

import structlog
from pydantic import BaseModel, ConfigDict

from clinicpay.billing.cache import CacheKey, DetailsCache
from clinicpay.billing.catalog import CouponCatalog, CouponRecord

logger = structlog.get_logger(__name__)


class CouponDetails(BaseModel):
    """Discount terms of a resolved coupon."""

    model_config = ConfigDict(frozen=True)

    coupon_id: str
    percent_off: float | None = None
    amount_off: int | None = None
    currency: str | None = None


class CouponCache(DetailsCache[CouponRecord]):
    """Coupon details keyed by catalog coupon id."""

    def __init__(self, storage: MutableMapping[str, CouponRecord] | None = None) -> None:
        super().__init__(CacheKey.coupon, storage)


def normalize_code(code: str | None) -> str | None:
    """Trim and lower-case a coupon code; blank codes become None."""
    if not code:
        return None
    normalized = code.strip().lower()
    return normalized or None


class CouponResolver:
    """Resolve coupon codes to cached coupon details."""

    def __init__(
        self,
        catalog: CouponCatalog,
        coupon_mappings: Mapping[str, str],
        cache: CouponCache | None = None,
    ) -> None:
        self.catalog = catalog
        self.coupon_mappings = {
            code.lower(): coupon_id for code, coupon_id in coupon_mappings.items()
        }
        self.cache = cache if cache is not None else CouponCache()

    def coupon_id_for(self, code: str | None) -> str | None:
        """Map a code to its catalog coupon id, or None when unknown."""
        normalized = normalize_code(code)
        if normalized is None:
            return None
        return self.coupon_mappings.get(normalized)

    async def resolve(self, code: str | None) -> CouponDetails | None:
        """
        Resolve a coupon code.

        Returns None for a missing code and, indistinguishably, for a code
        that is not configured.
        """
        coupon_id = self.coupon_id_for(code)
        if coupon_id is None:
            if normalize_code(code) is not None:
                logger.info("Unknown coupon code ignored")
            return None

        record = await self.cache.get_or_load(
            coupon_id, lambda: self.catalog.fetch_coupon(coupon_id)
        )
        return CouponDetails(
            coupon_id=coupon_id,
            percent_off=record.percent_off,
            amount_off=record.amount_off,
            currency=record.currency,
        )


__all__ = ["CouponDetails", "CouponCache", "CouponResolver", "normalize_code"]
