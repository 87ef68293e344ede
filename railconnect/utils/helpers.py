"""
Helper utility functions for the RailConnect journey planner.

This module contains time parsing and formatting helpers shared by the API
client and the journey timing engine.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "Australia/Melbourne"


def parse_utc(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO 8601 timestamp from the API into an aware UTC datetime.

    Args:
        value: Timestamp such as "2025-08-14T03:26:00Z"

    Returns:
        Optional[datetime]: Parsed datetime or None if missing/unparseable
    """
    if not value:
        return None
    if not isinstance(value, str):
        logger.warning(f"Ignoring non-string time value {value!r}")
        return None

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        logger.warning(f"Failed to parse time '{value}': {e}")
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_utc(dt: datetime) -> str:
    """Format an aware datetime as an API-style UTC timestamp (seconds precision)."""
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def utc_now() -> datetime:
    """Current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def minutes_between(start: datetime, end: datetime) -> int:
    """
    Whole minutes from start to end, rounded to the nearest minute.

    Negative when end is before start.
    """
    return round((end - start).total_seconds() / 60)


def add_minutes(dt: datetime, minutes: int) -> datetime:
    return dt + timedelta(minutes=minutes)


def epoch_millis(dt: datetime) -> int:
    """Milliseconds since the Unix epoch."""
    return int(dt.timestamp() * 1000)


def get_timezone(name: str = DEFAULT_TIMEZONE) -> ZoneInfo:
    """
    Resolve a timezone name, falling back to the network's home timezone.
    """
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone '{name}', using {DEFAULT_TIMEZONE}")
        return ZoneInfo(DEFAULT_TIMEZONE)


def to_local_iso(dt: datetime, tz_name: str = DEFAULT_TIMEZONE) -> str:
    """Render an instant as an ISO timestamp in the given local timezone."""
    return dt.astimezone(get_timezone(tz_name)).isoformat(timespec="minutes")


def format_local_time(dt: datetime, tz_name: str = DEFAULT_TIMEZONE, fmt: str = "%H:%M") -> str:
    """
    Format an instant as local wall-clock time.

    Args:
        dt: Aware datetime
        tz_name: IANA timezone name
        fmt: strftime format

    Returns:
        str: Formatted local time (e.g., "13:26")
    """
    return dt.astimezone(get_timezone(tz_name)).strftime(fmt)


def format_duration(minutes: int) -> str:
    """
    Format minutes as a human-readable duration (e.g., "2h 50m", "45m").
    """
    hours, mins = divmod(max(0, minutes), 60)
    if hours > 0:
        return f"{hours}h {mins}m"
    return f"{mins}m"
