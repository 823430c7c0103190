from __future__ import annotations

from datetime import datetime, timezone

from dateutil.parser import isoparse

__all__ = ["to_utc", "parse_timestamp", "format_timestamp", "utcnow"]

_DEF_TZ = timezone.utc


def to_utc(dt: datetime) -> datetime:
    """Ensure a datetime is timezone-aware and converted to UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=_DEF_TZ)
    return dt.astimezone(_DEF_TZ)


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse an ISO 8601 string into a UTC datetime.

    Naive values (e.g. the ``YYYY-MM-DDTHH:MM`` a datetime-local input
    produces) are taken as UTC. Raises ``ValueError`` on anything else.
    """
    if isinstance(value, datetime):
        return to_utc(value)
    if not isinstance(value, str):
        raise ValueError(f"Expected an ISO 8601 string, got {type(value).__name__}")
    text = value.strip()
    if not text:
        raise ValueError("Empty timestamp")
    try:
        dt = isoparse(text)
    except OverflowError as exc:
        raise ValueError(f"Timestamp out of range: {value!r}") from exc
    return to_utc(dt)


def format_timestamp(dt: datetime) -> str:
    """Canonical wire form: UTC, microsecond precision, ``Z`` suffix."""
    return to_utc(dt).isoformat(timespec="microseconds").replace("+00:00", "Z")


def utcnow() -> datetime:
    return datetime.now(_DEF_TZ)
