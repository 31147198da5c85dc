"""
Billing computation module.

Provides the checkout pricing core:
- Amount breakdowns with coupon discounts, shipping and credit card fees
- Coupon code resolution backed by a process-wide details cache
- Get-or-create of credit card fee prices in the external catalog
- Clinic timezone inference and checkout metadata
- Desired start date validation
"""

from clinicpay.billing.amounts import (
    AmountBreakdown,
    compute_breakdown,
    compute_one_time_breakdown,
    coupon_discount_terms,
    percent_to_amount,
)
from clinicpay.billing.catalog import (
    CatalogPrice,
    CouponCatalog,
    CouponRecord,
    PriceCatalog,
    PricePage,
    Recurrence,
    StripeCatalog,
)
from clinicpay.billing.config import BillingConfig, get_billing_config, set_billing_config
from clinicpay.billing.coupons import CouponCache, CouponDetails, CouponResolver
from clinicpay.billing.dates import is_within_next_two_months
from clinicpay.billing.exceptions import (
    BillingConfigurationError,
    BillingError,
    CatalogError,
    CatalogPriceMismatchError,
    InvalidAmountError,
    MissingPriceConfigurationError,
    PricingError,
    SubscriptionError,
    UnsupportedPlanError,
)
from clinicpay.billing.fee_prices import FeePriceKey, FeePriceRegistry
from clinicpay.billing.funding import is_credit_funding
from clinicpay.billing.metadata import (
    ClinicMetadata,
    build_clinic_metadata,
    build_invoice_metadata,
    build_subscription_metadata,
)
from clinicpay.billing.plans import PlanType, SubscriptionPlan, get_subscription_plan
from clinicpay.billing.timezone import Address, resolve_timezone

__all__ = [
    # Exceptions
    "BillingError",
    "PricingError",
    "InvalidAmountError",
    "CatalogPriceMismatchError",
    "SubscriptionError",
    "UnsupportedPlanError",
    "BillingConfigurationError",
    "MissingPriceConfigurationError",
    "CatalogError",
    # Configuration
    "BillingConfig",
    "get_billing_config",
    "set_billing_config",
    # Amounts
    "AmountBreakdown",
    "percent_to_amount",
    "compute_breakdown",
    "compute_one_time_breakdown",
    "coupon_discount_terms",
    # Catalog
    "CatalogPrice",
    "CouponRecord",
    "PricePage",
    "Recurrence",
    "CouponCatalog",
    "PriceCatalog",
    "StripeCatalog",
    # Coupons
    "CouponCache",
    "CouponDetails",
    "CouponResolver",
    # Fee prices
    "FeePriceKey",
    "FeePriceRegistry",
    # Plans and funding
    "PlanType",
    "SubscriptionPlan",
    "get_subscription_plan",
    "is_credit_funding",
    # Clinic metadata
    "Address",
    "resolve_timezone",
    "ClinicMetadata",
    "build_clinic_metadata",
    "build_invoice_metadata",
    "build_subscription_metadata",
    "is_within_next_two_months",
]
