"""Date parsing utilities."""

from datetime import date, datetime, timedelta, UTC
from typing import Any, Optional

from dateutil import parser as date_parser

MONTH_ABBREVIATIONS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def parse_date(date_str: str) -> date:
    """Parse a date string into a date object.

    Supports absolute dates ("2024-01-15", "15 Jan 2024") and the relative
    words "today", "yesterday" and "tomorrow".

    Args:
        date_str: Date string in various formats

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    date_str = date_str.strip().lower()
    today = date.today()

    relative_dates = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "tomorrow": today + timedelta(days=1),
    }
    if date_str in relative_dates:
        return relative_dates[date_str]

    try:
        dt = date_parser.parse(date_str, dayfirst=False)
        return dt.date()
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def coerce_date(value: Any) -> Optional[date]:
    """Best-effort conversion of a stored date value.

    Returns None for missing or unparseable values so callers can skip the
    record instead of assigning it to a default period.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        try:
            return date_parser.isoparse(value).date()
        except ValueError:
            pass
        try:
            return date_parser.parse(value).date()
        except (ValueError, TypeError, OverflowError):
            return None
    return None


def parse_month_label(label: Optional[str]) -> Optional[tuple[int, int]]:
    """Parse a month label such as "Jan 2026" into ``(year, month)``.

    The month part must be a three-letter English abbreviation (any case)
    followed by a four-digit year. Anything else returns None.
    """
    if not label:
        return None
    parts = label.split()
    if len(parts) != 2:
        return None
    name, year_str = parts
    try:
        month = [m.lower() for m in MONTH_ABBREVIATIONS].index(name.lower()) + 1
    except ValueError:
        return None
    if not year_str.isdigit() or len(year_str) != 4:
        return None
    return int(year_str), month


def format_month_label(year: int, month: int) -> str:
    """Inverse of :func:`parse_month_label`."""
    return f"{MONTH_ABBREVIATIONS[month - 1]} {year}"


def from_unix_timestamp(timestamp: Any) -> Optional[date]:
    """Convert a Unix timestamp (seconds, UTC) to a date."""
    if timestamp is None:
        return None
    try:
        return datetime.fromtimestamp(int(timestamp), tz=UTC).date()
    except (TypeError, ValueError, OverflowError, OSError):
        return None
