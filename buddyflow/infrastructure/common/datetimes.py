"""Datetime helpers for values read back from the database."""

from datetime import UTC, datetime


def ensure_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes; SQLite drops the offset on the way out."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def require_utc(value: datetime) -> datetime:
    converted = ensure_utc(value)
    assert converted is not None
    return converted
