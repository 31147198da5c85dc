"""Desired start date validation."""

import calendar
from datetime import UTC, date, datetime, timedelta


def add_calendar_months(moment: datetime, months: int) -> datetime:
    """
    Move ``moment`` forward by calendar months, rolling day overflow forward.

    The day of month is kept and any excess past the end of the target month
    spills into the next one, so Dec 31 + 2 months is Mar 3 (Mar 2 in a leap
    year) rather than being clamped to the end of February.
    """
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1

    days_in_month = calendar.monthrange(year, month)[1]
    if moment.day <= days_in_month:
        return moment.replace(year=year, month=month)

    first_of_month = moment.replace(year=year, month=month, day=1)
    return first_of_month + timedelta(days=moment.day - 1)


def parse_instant(value: str) -> datetime | None:
    """Parse an ISO date or timestamp; naive values are read as UTC."""
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def is_within_next_two_months(
    value: str | date | None, now: datetime | None = None
) -> bool:
    """
    Check that a date falls between now and two calendar months from now.

    Missing or unparsable input is simply outside the window.
    """
    if not value:
        return False

    if isinstance(value, datetime):
        parsed: datetime | None = value if value.tzinfo else value.replace(tzinfo=UTC)
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day, tzinfo=UTC)
    else:
        parsed = parse_instant(value)
    if parsed is None:
        return False

    current = now or datetime.now(UTC)
    if current.tzinfo is None:
        current = current.replace(tzinfo=UTC)
    latest = add_calendar_months(current, 2)

    return current <= parsed <= latest


__all__ = ["add_calendar_months", "parse_instant", "is_within_next_two_months"]
