"""Date and timezone helpers.

Central helper for calendar-day handling:
- Resolve "today" in an explicit IANA timezone
- Normalize stored timestamps to UTC (SQLite drops tzinfo on round-trip)
"""

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from loguru import logger


def get_zone(timezone_str: str | None) -> ZoneInfo:
    """Get ZoneInfo for an IANA timezone name, defaulting to UTC if invalid/missing."""
    try:
        return ZoneInfo(timezone_str or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone {timezone_str!r}, falling back to UTC")
        return ZoneInfo("UTC")


def today_in(timezone_str: str | None) -> date:
    """Current calendar date in the given timezone."""
    return datetime.now(get_zone(timezone_str)).date()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """Convert datetime to UTC.

    Args:
        dt: Datetime (timezone-aware or naive)

    Returns:
        Datetime in UTC timezone
    """
    if dt.tzinfo is None:
        # Assume UTC if naive
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
