"""Clinic timezone inference from a postal address."""

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict

DEFAULT_TIMEZONE = "UTC"

US_STATE_TIMEZONES: dict[str, str] = {
    "CA": "America/Los_Angeles",
    "OR": "America/Los_Angeles",
    "WA": "America/Los_Angeles",
    "NV": "America/Los_Angeles",
    "AZ": "America/Phoenix",
    "CO": "America/Denver",
    "UT": "America/Denver",
    "NM": "America/Denver",
    "MT": "America/Denver",
    "ID": "America/Denver",
    "ND": "America/Chicago",
    "SD": "America/Chicago",
    "NE": "America/Chicago",
    "KS": "America/Chicago",
    "OK": "America/Chicago",
    "TX": "America/Chicago",
    "MN": "America/Chicago",
    "IA": "America/Chicago",
    "MO": "America/Chicago",
    "AR": "America/Chicago",
    "LA": "America/Chicago",
    "WI": "America/Chicago",
    "IL": "America/Chicago",
    "TN": "America/Chicago",
    "MS": "America/Chicago",
    "AL": "America/Chicago",
    "MI": "America/Detroit",
    "IN": "America/Indiana/Indianapolis",
    "KY": "America/New_York",
    "GA": "America/New_York",
    "FL": "America/New_York",
    "SC": "America/New_York",
    "NC": "America/New_York",
    "VA": "America/New_York",
    "WV": "America/New_York",
    "OH": "America/New_York",
    "PA": "America/New_York",
    "NY": "America/New_York",
    "MD": "America/New_York",
    "DE": "America/New_York",
    "NJ": "America/New_York",
    "CT": "America/New_York",
    "RI": "America/New_York",
    "MA": "America/New_York",
    "VT": "America/New_York",
    "NH": "America/New_York",
    "ME": "America/New_York",
    "AK": "America/Anchorage",
    "HI": "Pacific/Honolulu",
    "PR": "America/Puerto_Rico",
}

COUNTRY_DEFAULT_TIMEZONES: dict[str, str] = {
    "US": "America/New_York",
    "CA": "America/Toronto",
    "GB": "Europe/London",
    "IE": "Europe/Dublin",
    "FR": "Europe/Paris",
    "DE": "Europe/Berlin",
    "ES": "Europe/Madrid",
    "IT": "Europe/Rome",
    "AU": "Australia/Sydney",
    "NZ": "Pacific/Auckland",
}


class Address(BaseModel):
    """Clinic address. Only country and state drive timezone resolution."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    country: str | None = None
    state: str | None = None
    city: str | None = None
    line1: str | None = None
    line2: str | None = None
    postal_code: str | None = None


def resolve_timezone(address: Address | Mapping[str, Any] | None) -> str:
    """
    Infer an IANA timezone for an address.

    Never fails: anything unrecognized resolves to UTC.
    """
    if address is None:
        return DEFAULT_TIMEZONE
    if isinstance(address, Mapping):
        country_raw = address.get("country")
        state_raw = address.get("state")
    else:
        country_raw = address.country
        state_raw = address.state

    country = (country_raw or "").strip().upper()
    if not country:
        return DEFAULT_TIMEZONE

    if country == "US" and state_raw:
        state_timezone = US_STATE_TIMEZONES.get(state_raw.strip().upper())
        if state_timezone:
            return state_timezone

    return COUNTRY_DEFAULT_TIMEZONES.get(country, DEFAULT_TIMEZONE)


__all__ = [
    "Address",
    "DEFAULT_TIMEZONE",
    "US_STATE_TIMEZONES",
    "COUNTRY_DEFAULT_TIMEZONES",
    "resolve_timezone",
]
