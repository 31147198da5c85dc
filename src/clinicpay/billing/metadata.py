"""
Clinic metadata attached to catalog customers, invoices and subscriptions.

Catalog metadata values must be strings, so every record here has a flat
string-only rendering.
"""

from collections.abc import Mapping
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict

from clinicpay.billing.amounts import AmountBreakdown
from clinicpay.billing.plans import BillingCadence, PlanType
from clinicpay.billing.timezone import Address, resolve_timezone


def format_timestamp(moment: datetime) -> str:
    """UTC ISO-8601 with millisecond precision and a ``Z`` suffix."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ClinicMetadata(BaseModel):
    """Clinic details and terms acceptance captured at checkout."""

    model_config = ConfigDict(frozen=True)

    clinic_name: str
    clinic_timezone: str
    buying_group_member: bool
    buying_group_name: str | None = None
    desired_start_date: str | None = None
    terms_accepted_at: str

    def to_catalog_metadata(self) -> dict[str, str]:
        return {
            "clinic_name": self.clinic_name,
            "clinic_timezone": self.clinic_timezone,
            "buying_group_member": str(self.buying_group_member).lower(),
            "buying_group_name": self.buying_group_name or "",
            "desired_start_date": self.desired_start_date or "",
            "terms_accepted_at": self.terms_accepted_at,
        }


def build_clinic_metadata(
    clinic_name: str,
    address: Address | Mapping[str, Any],
    *,
    buying_group_member: bool,
    buying_group_name: str | None = None,
    desired_start_date: str | None = None,
    now: datetime | None = None,
) -> ClinicMetadata:
    """Resolve the clinic timezone and stamp the terms acceptance time."""
    return ClinicMetadata(
        clinic_name=clinic_name,
        clinic_timezone=resolve_timezone(address),
        buying_group_member=buying_group_member,
        buying_group_name=buying_group_name,
        desired_start_date=desired_start_date,
        terms_accepted_at=format_timestamp(now or datetime.now(UTC)),
    )


def _fee_percent_applied(applies_fee: bool, fee_percent: Decimal | int) -> str:
    return str(fee_percent) if applies_fee else "0"


def build_invoice_metadata(
    clinic: ClinicMetadata,
    breakdown: AmountBreakdown,
    *,
    applies_fee: bool,
    fee_percent: Decimal | int,
    coupon_code: str | None = None,
    coupon_percent_off: float | None = None,
    coupon_amount_off: int | None = None,
    payment_method_funding: str | None = None,
) -> dict[str, str]:
    """Metadata for a one-time purchase invoice."""
    metadata = {
        "plan_type": PlanType.ONE_TIME.value,
        "coupon_code": coupon_code or "",
        "coupon_percent_off": "" if coupon_percent_off is None else str(coupon_percent_off),
        "coupon_amount_off": "" if coupon_amount_off is None else str(coupon_amount_off),
        "shipping_amount_cents": str(breakdown.shipping_amount),
        "credit_card_fee_cents": str(breakdown.credit_card_fee_amount),
        "fee_percent_applied": _fee_percent_applied(applies_fee, fee_percent),
        "base_amount_cents": str(breakdown.base_amount),
        "discount_amount_cents": str(breakdown.discount_amount),
        "payment_method_funding": payment_method_funding or "unknown",
    }
    metadata.update(clinic.to_catalog_metadata())
    return metadata


def build_subscription_metadata(
    clinic: ClinicMetadata,
    breakdown: AmountBreakdown,
    *,
    duration_years: int,
    cadence: BillingCadence,
    applies_fee: bool,
    fee_percent: Decimal | int,
    coupon_code: str | None = None,
    coupon_percent_off: float | None = None,
) -> dict[str, str]:
    """Metadata for a subscription."""
    metadata = {
        "plan_type": PlanType.SUBSCRIPTION.value,
        "duration_years": str(duration_years),
        "billing_cadence": cadence,
        "coupon_code": coupon_code or "",
        "coupon_percent_off": "" if coupon_percent_off is None else str(coupon_percent_off),
        "coupon_discount_amount_cents": str(breakdown.discount_amount),
        "credit_card_fee_cents": str(breakdown.credit_card_fee_amount),
        "fee_percent_applied": _fee_percent_applied(applies_fee, fee_percent),
        "shipping_amount_cents": str(breakdown.shipping_amount),
    }
    metadata.update(clinic.to_catalog_metadata())
    return metadata


__all__ = [
    "ClinicMetadata",
    "format_timestamp",
    "build_clinic_metadata",
    "build_invoice_metadata",
    "build_subscription_metadata",
]
