"""Time utilities."""
from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return current UTC time with timezone awareness."""

    return datetime.now(tz=UTC)


def from_unix_timestamp(value: int | float | None) -> datetime | None:
    """Convert a Unix timestamp (seconds) to an aware UTC datetime."""

    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=UTC)


__all__ = ["utcnow", "from_unix_timestamp"]
