"""
Timezone utilities for ChoreQuest.

Timestamps are stored as naive UTC datetimes. Rules that depend on the
household's wall clock (morning completions, daily streaks) convert them to
the timezone configured by the TZ environment variable.
"""

import logging
import os
from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = 'UTC'


def get_timezone() -> ZoneInfo:
    """Get the configured timezone from environment.

    Returns:
        ZoneInfo for the configured timezone, defaults to UTC
    """
    tz_name = os.environ.get('TZ', DEFAULT_TIMEZONE)
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone {tz_name!r}, falling back to {DEFAULT_TIMEZONE}")
        return ZoneInfo(DEFAULT_TIMEZONE)


def utc_now() -> datetime:
    """Current UTC time as a naive datetime, the form stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def local_now() -> datetime:
    """Get the current datetime in the configured timezone."""
    return datetime.now(get_timezone())


def local_today() -> date:
    """Get today's date in the configured timezone."""
    return local_now().date()


def to_local(value: Optional[datetime]) -> Optional[datetime]:
    """Convert a stored naive UTC datetime to the configured timezone."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(get_timezone())


def isoformat(value: Optional[datetime]) -> Optional[str]:
    """Serialize a stored naive UTC datetime as ISO 8601 with a Z suffix."""
    if value is None:
        return None
    return value.isoformat() + 'Z'
