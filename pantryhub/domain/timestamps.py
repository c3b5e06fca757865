"""UTC normalization shared by the domain models."""

from datetime import UTC, datetime


def as_utc(value: datetime) -> datetime:
    """Return value in UTC, treating a naive datetime as already UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
