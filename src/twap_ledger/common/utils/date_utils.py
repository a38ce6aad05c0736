"""
Date Utilities
==============

Timestamp conversions and YYYYMMDD day-partition key helpers.
"""

import re
from datetime import UTC, datetime, timedelta

DAY_KEY_PATTERN = re.compile(r"^\d{8}$")


def from_unix_ms(timestamp_ms: int) -> datetime:
    """
    Convert Unix timestamp in milliseconds to datetime (UTC).

    Args:
        timestamp_ms: Unix timestamp in milliseconds

    Returns:
        Timezone-aware datetime in UTC
    """
    seconds, millis = divmod(int(timestamp_ms), 1000)
    return datetime.fromtimestamp(seconds, tz=UTC) + timedelta(milliseconds=millis)


def to_iso_ms(dt: datetime) -> str:
    """
    Format datetime as ISO-8601 UTC with millisecond precision.

    Example: 2025-10-06T12:34:56.789Z

    Args:
        dt: Datetime object (timezone-aware or naive assumed UTC)

    Returns:
        ISO-8601 string with trailing Z
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    dt = dt.astimezone(UTC)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def utc_now() -> datetime:
    """
    Get current time in UTC.

    Returns:
        Current UTC datetime
    """
    return datetime.now(UTC)


def utc_today() -> datetime:
    """
    Get today's date at midnight UTC.

    Returns:
        Today's date at 00:00:00 UTC
    """
    now = utc_now()
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def is_day_key(value: str) -> bool:
    """Check that value looks like a YYYYMMDD partition key."""
    return bool(DAY_KEY_PATTERN.match(value))


def parse_day_key(value: str) -> datetime:
    """
    Parse a YYYYMMDD key into a UTC midnight datetime.

    Raises:
        ValueError: If value is not a valid calendar date in YYYYMMDD form
    """
    if not is_day_key(value):
        raise ValueError(f"Invalid day key '{value}', expected YYYYMMDD")
    return datetime.strptime(value, "%Y%m%d").replace(tzinfo=UTC)


def format_day_key(dt: datetime) -> str:
    return dt.strftime("%Y%m%d")


def day_keys_between(start: str, end: str) -> list[str]:
    """
    List day keys from start to end (inclusive).

    Args:
        start: First day (YYYYMMDD)
        end: Last day (YYYYMMDD)

    Returns:
        Ordered day keys; empty if end < start
    """
    result = []
    current = parse_day_key(start)
    last = parse_day_key(end)

    while current <= last:
        result.append(format_day_key(current))
        current += timedelta(days=1)

    return result
