"""Datetime utilities for timezone-aware UTC timestamps.

Usage:
    from bakery_control.utils.datetime_utils import utc_now

    # For SQLAlchemy Column defaults
    created_at = Column(DateTime, default=utc_now)
"""

from datetime import date, datetime, timezone


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def today() -> date:
    """Return the current local date (production days are local)."""
    return date.today()


def as_date(value) -> date:
    """
    Normalize a date-like value to a ``date``.

    Accepts ``date``, ``datetime`` or an ISO ``YYYY-MM-DD`` string.

    Raises:
        ValueError: If a string cannot be parsed
        TypeError: If the value is of an unsupported type
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value.strip())
    raise TypeError(f"Cannot convert {type(value).__name__} to date")
