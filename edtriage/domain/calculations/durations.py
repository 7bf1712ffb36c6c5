from __future__ import annotations

from datetime import UTC, datetime


def to_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    return None if value is None else to_utc(value)


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from ``start`` to ``end``, floored."""
    return int((to_utc(end) - to_utc(start)).total_seconds() // 60)
