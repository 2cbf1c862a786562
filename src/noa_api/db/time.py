# src/noa_api/db/time.py
"""Time utilities for database models."""

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def isoformat(value: datetime | str | None) -> str | None:
    """Render a stored timestamp the same way regardless of driver tz handling."""
    if value is None or isinstance(value, str):
        return value
    return value.isoformat()
