"""Timestamp rendering and duration parsing helpers."""

from __future__ import annotations

import re
from datetime import datetime, timedelta

from dateutil import tz

# Regex for parsing duration strings like "15d", "2 weeks", "15 minutes"
# Note: M for months is case-sensitive, all others are case-insensitive
DURATION_PATTERN = re.compile(
    r"^\s*(\d+)\s*(s|sec|seconds?|m|min|minutes?|"
    r"h|hr|hours?|d|days?|w|weeks?|M|months?)\s*$",
    re.IGNORECASE,
)

UNIT_SECONDS = {
    "s": 1,
    "sec": 1,
    "second": 1,
    "seconds": 1,
    "m": 60,
    "min": 60,
    "minute": 60,
    "minutes": 60,
    "h": 3600,
    "hr": 3600,
    "hour": 3600,
    "hours": 3600,
    "d": 86400,
    "day": 86400,
    "days": 86400,
    "w": 604800,
    "week": 604800,
    "weeks": 604800,
    "M": 2592000,  # 30 days, uppercase M only
    "month": 2592000,
    "months": 2592000,
}

INVALID_DATE = "Invalid date"


def to_datetime(timestamp: float, utc_offset: float = 0.0) -> datetime:
    """Convert epoch seconds to an aware datetime in the given UTC offset (hours)."""
    zone = tz.tzoffset(None, int(utc_offset * 3600))
    return datetime.fromtimestamp(timestamp, tz=zone)


def format_timestamp(timestamp: float, utc_offset: float = 0.0) -> str:
    """Render epoch seconds as e.g. ``5 Jan 2024, 1:02:03 pm``.

    Epochs outside the platform's datetime range render as ``INVALID_DATE``.
    """
    try:
        dt = to_datetime(timestamp, utc_offset)
    except (ValueError, OverflowError, OSError):
        return INVALID_DATE
    hour = dt.hour % 12 or 12
    meridiem = "am" if dt.hour < 12 else "pm"
    return f"{dt.day} {dt:%b %Y}, {hour}:{dt:%M:%S} {meridiem}"


def format_date_folder(timestamp: float, utc_offset: float = 0.0) -> str:
    """Render epoch seconds as ``YYYYMMDD``."""
    return to_datetime(timestamp, utc_offset).strftime("%Y%m%d")


def parse_duration(value: str | int | float | timedelta) -> timedelta:
    """Parse a duration such as ``"15m"``, ``"15 days"`` or a number of seconds.

    Raises:
        ValueError: If the string is not a recognised duration
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, (int, float)):
        return timedelta(seconds=value)

    match = DURATION_PATTERN.match(value)
    if not match:
        raise ValueError(
            f"Invalid duration format: {value!r}. "
            "Expected format like '15m', '2 hours', '15d'"
        )

    amount = int(match.group(1))
    unit = match.group(2)
    # Uppercase M means months; everything else is matched case-insensitively
    key = unit if unit == "M" else unit.lower()
    return timedelta(seconds=amount * UNIT_SECONDS[key])
