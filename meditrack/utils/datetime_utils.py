"""
Common date/time utility functions for consistent date/time handling across the application

Storage: all timestamps are written in UTC.
"""

from datetime import date, datetime, time, timezone


def utc_now() -> datetime:
    """
    Get current UTC datetime.
    """
    return datetime.now(timezone.utc)


def start_of_day_utc(day: date) -> datetime:
    """Midnight (UTC) at the start of `day`."""
    return datetime.combine(day, time.min, tzinfo=timezone.utc)
