"""
Amount breakdown arithmetic.

Every amount is an integer in minor currency units. Percentages are applied
with Decimal arithmetic and rounded half away from zero, so no float ever
touches a currency value.
"""

from decimal import ROUND_HALF_UP, Decimal

from pydantic import BaseModel, ConfigDict, Field

from clinicpay.billing.config import BillingConfig
from clinicpay.billing.coupons import CouponDetails
from clinicpay.billing.money_utils import format_minor_units

_HUNDRED = Decimal(100)

Percent = int | Decimal


class AmountBreakdown(BaseModel):
    """Itemized charge breakdown in minor currency units."""

    model_config = ConfigDict(frozen=True)

    base_amount: int = Field(..., ge=0, description="List price before discount")
    discount_amount: int = Field(..., ge=0, description="Amount removed by a coupon")
    subtotal_after_discount: int = Field(..., ge=0)
    shipping_amount: int = Field(..., ge=0, description="Flat add-on, never discounted")
    credit_card_fee_amount: int = Field(..., ge=0, description="Surcharge for credit funding")
    total_amount: int = Field(..., ge=0)

    def formatted(self, currency: str, locale: str | None = None) -> dict[str, str]:
        """Render every amount as a locale-aware currency string."""
        return {
            name: format_minor_units(value, currency, locale)
            for name, value in self.model_dump().items()
        }


def _to_decimal(value: Percent | float) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() keeps 12.5 as 12.5 instead of its binary expansion
    return Decimal(str(value))


def percent_to_amount(amount: int, percent: Percent | float) -> int:
    """Return ``round(amount * percent / 100)``, ties rounded away from zero."""
    exact = Decimal(amount) * _to_decimal(percent) / _HUNDRED
    return int(exact.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def compute_breakdown(
    base: int,
    shipping: int,
    coupon_percent: Percent | float | None = None,
    coupon_amount_off: int | None = None,
    applies_fee: bool = False,
    fee_percent: Percent | float = 0,
) -> AmountBreakdown:
    """
    Compute the charge breakdown for a purchase.

    A flat ``coupon_amount_off`` takes precedence over ``coupon_percent``; the
    percent is only used when no flat amount is supplied. The flat amount is
    capped at ``base``. The credit card fee is taken from the discounted
    subtotal, and shipping is added untouched.

    Inputs are assumed validated by the caller.
    """
    if coupon_amount_off is not None:
        discount_amount = min(coupon_amount_off, base)
    elif coupon_percent:
        discount_amount = percent_to_amount(base, coupon_percent)
    else:
        discount_amount = 0

    subtotal_after_discount = max(base - discount_amount, 0)
    credit_card_fee_amount = (
        percent_to_amount(subtotal_after_discount, fee_percent) if applies_fee else 0
    )
    total_amount = subtotal_after_discount + shipping + credit_card_fee_amount

    return AmountBreakdown(
        base_amount=base,
        discount_amount=discount_amount,
        subtotal_after_discount=subtotal_after_discount,
        shipping_amount=shipping,
        credit_card_fee_amount=credit_card_fee_amount,
        total_amount=total_amount,
    )


def compute_one_time_breakdown(
    config: BillingConfig,
    *,
    applies_fee: bool,
    coupon_percent: Percent | float | None = None,
    coupon_amount_off: int | None = None,
    base_amount: int | None = None,
    shipping_amount: int | None = None,
) -> AmountBreakdown:
    """Breakdown for the one-time purchase, defaulting amounts from configuration."""
    return compute_breakdown(
        base=config.one_time_base_amount if base_amount is None else base_amount,
        shipping=config.shipping_cost if shipping_amount is None else shipping_amount,
        coupon_percent=coupon_percent,
        coupon_amount_off=coupon_amount_off,
        applies_fee=applies_fee,
        fee_percent=config.credit_card_fee_percent,
    )


def coupon_discount_terms(
    coupon: CouponDetails | None, currency: str
) -> tuple[float | None, int | None]:
    """
    Translate a resolved coupon into ``(coupon_percent, coupon_amount_off)``.

    Amount-off coupons only count when issued in the working currency.
    """
    if coupon is None:
        return None, None
    if coupon.percent_off:
        return coupon.percent_off, None
    if coupon.amount_off and (coupon.currency or "").lower() == currency.lower():
        return None, coupon.amount_off
    return None, None


__all__ = [
    "AmountBreakdown",
    "percent_to_amount",
    "compute_breakdown",
    "compute_one_time_breakdown",
    "coupon_discount_terms",
]
