"""
DateTime utility functions for the application.

Milestone dates are handled at day granularity as plain ``date`` objects;
timezones only matter when resolving "today" and formatting audit timestamps.
"""
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.errors import ValidationError

ISO_DATE_FORMAT = "%Y-%m-%d"


def parse_iso_date(value: str, field: str) -> date:
    """
    Parse a YYYY-MM-DD string into a date.

    Args:
        value: Date string
        field: Field name reported if parsing fails

    Returns:
        date: Parsed date

    Raises:
        ValidationError: If the string is not a valid ISO date
    """
    try:
        return datetime.strptime(value.strip(), ISO_DATE_FORMAT).date()
    except (ValueError, TypeError, AttributeError):
        raise ValidationError(field, f"must be a date in YYYY-MM-DD format, got {value!r}")


def to_day(value, field: str):
    """
    Coerce a milestone value to a date (or None).

    Accepts None, empty strings, date, datetime (time of day dropped)
    and ISO date strings. Anything else fails fast.
    """
    if value is None:
        return None
    # datetime is a subclass of date, check it first
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        if not value.strip():
            return None
        return parse_iso_date(value, field)
    raise ValidationError(field, f"unsupported date value {value!r}")


def add_days(day: date, days: int) -> date:
    """Calendar-day arithmetic (no business-day awareness)."""
    return day + timedelta(days=days)


def format_date(value):
    """Return an ISO string for a date, or None."""
    if value is None:
        return None
    return value.isoformat()


def get_timezone(tz_name: str) -> ZoneInfo:
    """
    Resolve a timezone name.

    Raises:
        ValidationError: If the name is not a known IANA timezone
    """
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError("timezone", f"unknown timezone {tz_name!r}")


def today_local(tz_name: str) -> date:
    """Today's date in the given timezone."""
    return datetime.now(get_timezone(tz_name)).date()


def format_datetime_local(dt, tz_name: str):
    """
    Format a datetime in the given timezone with readable format.
    Returns format like: "October 15, 2025 02:30:45 PM"

    Args:
        dt: datetime object, ISO string, or None
        tz_name: IANA timezone name

    Returns:
        str: Formatted datetime string, or None if dt is None
    """
    if not dt:
        return None

    # Handle string input (ISO format)
    if isinstance(dt, str):
        try:
            dt = datetime.fromisoformat(dt.replace('Z', '+00:00'))
        except ValueError:
            return str(dt)  # Return as-is if parsing fails

    # If dt is naive (no timezone), assume it's UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    local_dt = dt.astimezone(get_timezone(tz_name))
    return local_dt.strftime("%B %d, %Y %I:%M:%S %p")
