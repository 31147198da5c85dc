"""
Billing core exceptions.

Custom exceptions for billing computations with clear error messages.
Each error carries a status code, context and recovery hint so request
handlers can translate it into a user-facing response.
"""

from typing import Any


class BillingError(Exception):
    """
    Base billing error with enhanced context.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code for API responses
        status_code: HTTP status code for this error type
        context: Additional context data about the error
        recovery_hint: Suggested action to resolve the error
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        status_code: int = 400,
        context: dict[str, Any] | None = None,
        recovery_hint: str | None = None,
    ):
        self.message = message
        self.error_code = error_code or "BILLING_ERROR"
        self.status_code = status_code
        self.context = context or {}
        self.recovery_hint = recovery_hint
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for API responses."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "status_code": self.status_code,
            "context": self.context,
            "recovery_hint": self.recovery_hint,
        }


class PricingError(BillingError):
    """Pricing-related errors."""

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        recovery_hint: str | None = None,
    ):
        super().__init__(
            message, "PRICING_ERROR", status_code=400, context=context, recovery_hint=recovery_hint
        )


class InvalidAmountError(PricingError):
    """A fee price was requested for a non-positive amount."""

    def __init__(self, message: str, amount: int | None = None) -> None:
        context: dict[str, Any] = {}
        if amount is not None:
            context["amount"] = amount

        super().__init__(
            message,
            context=context,
            recovery_hint="Only request a fee price when the computed fee is greater than zero",
        )
        self.error_code = "INVALID_AMOUNT"


class CatalogPriceMismatchError(PricingError):
    """A catalog price does not have the shape this checkout expects."""

    def __init__(
        self,
        message: str,
        price_id: str | None = None,
        expected: dict[str, Any] | None = None,
    ) -> None:
        context: dict[str, Any] = {}
        if price_id:
            context["price_id"] = price_id
        if expected:
            context["expected"] = expected

        super().__init__(
            message,
            context=context,
            recovery_hint="Check the price currency and recurrence configured in the catalog",
        )
        self.error_code = "CATALOG_PRICE_MISMATCH"
        self.status_code = 500


class SubscriptionError(BillingError):
    """Subscription-related errors."""

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        recovery_hint: str | None = None,
    ):
        super().__init__(
            message,
            "SUBSCRIPTION_ERROR",
            status_code=400,
            context=context,
            recovery_hint=recovery_hint,
        )


class UnsupportedPlanError(SubscriptionError):
    """Requested duration/cadence combination is not offered."""

    def __init__(self, message: str, duration_years: int, cadence: str) -> None:
        super().__init__(
            message,
            context={"duration_years": duration_years, "cadence": cadence},
            recovery_hint="Choose a 1, 2 or 3 year plan billed monthly or annually",
        )
        self.error_code = "UNSUPPORTED_PLAN"


class BillingConfigurationError(BillingError):
    """Billing configuration errors."""

    def __init__(
        self, message: str, config_key: str | None = None, recovery_hint: str | None = None
    ):
        context = {}
        if config_key:
            context["config_key"] = config_key

        super().__init__(
            message,
            "BILLING_CONFIG_ERROR",
            status_code=500,
            context=context,
            recovery_hint=recovery_hint or "Check billing configuration settings",
        )


class MissingPriceConfigurationError(BillingConfigurationError):
    """A recognized plan has no catalog price id configured."""

    def __init__(self, message: str, config_key: str) -> None:
        super().__init__(
            message,
            config_key=config_key,
            recovery_hint=f"Set {config_key} to the catalog price id for this plan",
        )
        self.error_code = "MISSING_PRICE_CONFIGURATION"


class CatalogError(BillingError):
    """The external price catalog rejected or failed a request."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = dict(context or {})
        if operation:
            ctx["operation"] = operation

        super().__init__(
            message,
            "CATALOG_ERROR",
            status_code=502,
            context=ctx,
            recovery_hint="Check payment processor availability and credentials, then retry",
        )
