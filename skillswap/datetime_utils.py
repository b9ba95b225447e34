"""Datetime utilities for timezone-aware UTC timestamps.

SQLite hands ``DateTime(timezone=True)`` columns back as naive values, so
anything read from the database is passed through :func:`as_utc` before it
is compared with :func:`utc_now`.
"""

from __future__ import annotations

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes as UTC; leave aware ones untouched."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def isoformat_or_none(value: datetime | None) -> str | None:
    value = as_utc(value)
    return value.isoformat() if value else None
