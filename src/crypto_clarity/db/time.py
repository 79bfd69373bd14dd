"""Time utilities for date-keyed records."""

from collections.abc import Callable
from datetime import UTC, datetime, time, timedelta

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def utc_day(moment: datetime) -> str:
    """Return the UTC calendar day of ``moment`` as ``YYYY-MM-DD``."""
    return as_utc(moment).date().isoformat()


def end_of_utc_day(moment: datetime) -> datetime:
    """Return the last representable instant of the UTC day containing ``moment``."""
    day = as_utc(moment).date()
    return datetime.combine(day, time.max, tzinfo=UTC)


def next_utc_midnight(moment: datetime) -> datetime:
    """Return the instant at which the daily quota key rolls over."""
    day = as_utc(moment).date() + timedelta(days=1)
    return datetime.combine(day, time.min, tzinfo=UTC)


def as_utc(moment: datetime) -> datetime:
    """Treat naive datetimes (as returned by SQLite) as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)
