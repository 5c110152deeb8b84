"""Utility functions for datetime operations."""

from datetime import date, datetime, UTC, timezone


def utc_now():
    """Return the current UTC datetime in a timezone-aware format."""
    return datetime.now(UTC)


def utc_now_naive():
    """Return the current UTC datetime without tzinfo, as stored in the database."""
    return make_naive(utc_now())


def make_naive(dt):
    """Convert an aware datetime to a naive UTC datetime."""
    if dt is None:
        return None
    if dt.tzinfo is not None:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def verbose_date(day: date) -> str:
    """Format a day like "January 7, 2019"."""
    return f"{day.strftime('%B')} {day.day}, {day.year}"
