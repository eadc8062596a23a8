# src/timezone_utils.py
#
# Timezone utilities for consistent datetime handling

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytz

from config.settings import APP_TIMEZONE

_tz = pytz.timezone(APP_TIMEZONE)


def now() -> datetime:
    """
    Get current timezone-aware datetime in the app timezone.
    """
    return datetime.now(_tz)


def make_aware(dt: datetime, tz: Optional[str] = None) -> datetime:
    """
    Make a naive datetime timezone-aware.

    Args:
        dt: Naive datetime
        tz: Timezone name (default: APP_TIMEZONE)

    Returns:
        Timezone-aware datetime
    """
    if dt.tzinfo is not None:
        return dt

    tz_obj = pytz.timezone(tz) if tz else _tz
    return tz_obj.localize(dt)


def to_utc(dt: datetime) -> datetime:
    """
    Convert a datetime to UTC.
    If datetime is naive, assumes it's in the app timezone.
    """
    return make_aware(dt).astimezone(timezone.utc)


def parse_iso_with_tz(iso_string: str) -> datetime:
    """
    Parse ISO format string into an app-timezone datetime.
    Naive strings are read as app-timezone local time.
    """
    dt = datetime.fromisoformat(iso_string.replace('Z', '+00:00'))
    if dt.tzinfo is None:
        return make_aware(dt)
    return dt.astimezone(_tz)


def add_days(dt: datetime, days: int) -> datetime:
    """
    Move a datetime by whole days keeping the same wall-clock time.
    Re-localizes pytz datetimes so DST changes in between don't shift the hour.
    """
    shifted = dt.replace(tzinfo=None) + timedelta(days=days)
    tz = dt.tzinfo
    if tz is None:
        return shifted
    if hasattr(tz, "localize"):
        return tz.localize(shifted)
    return shifted.replace(tzinfo=tz)
