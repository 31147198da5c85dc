"""Payment method funding checks."""

from collections.abc import Mapping
from typing import Any

CREDIT_FUNDING = "credit"
UNKNOWN_FUNDING = "unknown"


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def card_funding(payment_method: Any) -> str:
    """Funding source of a card payment method, ``unknown`` when not reported."""
    card = _field(payment_method, "card")
    if not card:
        return UNKNOWN_FUNDING
    return _field(card, "funding") or UNKNOWN_FUNDING


def is_credit_funding(payment_method: Any) -> bool:
    """
    Whether the credit card fee applies to this payment method.

    Only cards are considered; a card whose funding is not reported is
    treated as credit.
    """
    if _field(payment_method, "type") != "card":
        return False
    return card_funding(payment_method) in (CREDIT_FUNDING, UNKNOWN_FUNDING)


__all__ = ["card_funding", "is_credit_funding"]
