"""Shared parsing and calendar helpers used across the booking engine."""

import calendar
import re
from datetime import date, timedelta
from typing import Iterator, Optional

TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_HTML_TAG = re.compile(r"<[^>]*>")


def normalize_phone(value: str) -> str:
    """Normalize a phone number by stripping everything except digits.

    Examples:
        >>> normalize_phone("(11) 98765-4321")
        '11987654321'
        >>> normalize_phone("+55 11 98765 4321")
        '5511987654321'
    """
    return re.sub(r"[^\d]", "", value or "")


def strip_tags(value: str) -> str:
    """Remove anything that looks like an HTML tag."""
    return _HTML_TAG.sub("", value)


def parse_time(value: str) -> Optional[int]:
    """Parse ``HH:mm`` (or ``H:mm``) into minutes since midnight.

    Returns None for anything that is not a valid 24h clock time.
    """
    if not isinstance(value, str) or not TIME_PATTERN.match(value.strip()):
        return None
    hours, minutes = value.strip().split(":")
    return int(hours) * 60 + int(minutes)


def format_time(minutes: int) -> str:
    """Format minutes since midnight as ``HH:mm``."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_date(value: str) -> Optional[date]:
    """Parse a ``YYYY-MM-DD`` string. Returns None when malformed or impossible."""
    if not isinstance(value, str) or not DATE_PATTERN.match(value.strip()):
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        return None


def weekday_of(day: date) -> int:
    """Weekday with 0 = Sunday .. 6 = Saturday."""
    return day.isoweekday() % 7


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last calendar day of a month."""
    last = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last)


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every date from start to end, both inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
