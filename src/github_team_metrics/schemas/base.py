"""Base schema class and shared validators."""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict


def as_naive_utc(value: datetime | None) -> datetime | None:
    """Convert an aware datetime to naive UTC (the storage convention).

    Naive values are assumed to already be UTC.
    """
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def utc_now() -> datetime:
    """Current time as naive UTC."""
    return datetime.now(UTC).replace(tzinfo=None)


class SchemaBase(BaseModel):
    """Base class for the API payload schemas."""

    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
    )
