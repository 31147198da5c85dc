"""
Money and currency utilities using py-moneyed and Babel.

Billing amounts are carried as integer minor units everywhere in this
package; these helpers only validate currency codes and turn minor units
into Money objects or locale-aware display strings.
"""

from decimal import Decimal
from typing import Any

from babel import Locale
from babel.core import UnknownLocaleError
from babel.numbers import format_currency, get_currency_precision
from moneyed import Currency, Money, get_currency
from moneyed.classes import CurrencyDoesNotExist

# Default locale for formatting
DEFAULT_LOCALE = "en_US"


class MoneyHandler:
    """Central handler for money operations with proper error handling."""

    def __init__(self, default_currency: str = "USD", default_locale: str = DEFAULT_LOCALE) -> None:
        self.default_currency = self.validate_currency(default_currency)
        self.default_locale = self._validate_locale(default_locale)

    def validate_currency(self, currency_code: str) -> Currency:
        """Validate and return Currency object. Codes are case-insensitive."""
        try:
            return get_currency(currency_code.upper())
        except CurrencyDoesNotExist:
            raise ValueError(f"Invalid currency code: {currency_code}")

    def _validate_locale(self, locale_code: str) -> str:
        """Validate locale code."""
        try:
            Locale.parse(locale_code)
            return locale_code
        except (UnknownLocaleError, ValueError):
            return DEFAULT_LOCALE

    def get_currency_precision(self, currency_code: str) -> int:
        """Get decimal precision for a currency."""
        return get_currency_precision(currency_code.upper())

    def money_from_minor_units(self, minor_units: int, currency: str | None = None) -> Money:
        """Create Money from minor units (e.g., cents)."""
        validated_currency = self.validate_currency(currency or self.default_currency.code)
        precision = self.get_currency_precision(validated_currency.code)
        amount = Decimal(minor_units) / Decimal(10**precision)
        return Money(amount=amount, currency=validated_currency)

    def format_money(self, money: Money, locale: str | None = None, **kwargs: Any) -> str:
        """Format Money object with locale-aware formatting."""
        validated_locale = self._validate_locale(locale or self.default_locale)

        try:
            return format_currency(
                number=money.amount, currency=money.currency.code, locale=validated_locale, **kwargs
            )
        except (TypeError, ValueError):
            # Fallback to simple formatting if locale issues
            return f"{money.currency.code} {money.amount}"

    def format_minor_units(
        self, minor_units: int, currency: str | None = None, locale: str | None = None
    ) -> str:
        """Format an integer minor-unit amount for display."""
        return self.format_money(self.money_from_minor_units(minor_units, currency), locale)


# Global instance for convenience
money_handler = MoneyHandler()


def validate_currency(currency_code: str) -> Currency:
    """Validate a currency code with the default handler."""
    return money_handler.validate_currency(currency_code)


def format_minor_units(minor_units: int, currency: str, locale: str | None = None) -> str:
    """Format minor units with the default handler."""
    return money_handler.format_minor_units(minor_units, currency, locale)


__all__ = [
    "DEFAULT_LOCALE",
    "MoneyHandler",
    "money_handler",
    "validate_currency",
    "format_minor_units",
]
