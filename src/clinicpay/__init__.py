"""
ClinicPay - billing computation core for clinic checkout.

This package computes what a clinic purchase should cost and keeps the
external price catalog tidy:
- Amount breakdowns (discounts, shipping, credit card fees) in minor units
- Coupon code resolution with a process-wide details cache
- Idempotent get-or-create of credit card fee prices in the catalog
- Clinic timezone and terms-acceptance metadata

Request handling, authentication and the actual charge live elsewhere.
"""

__version__ = "1.0.0"


def get_version() -> str:
    """Get package version."""
    return __version__


__all__ = ["__version__", "get_version"]
