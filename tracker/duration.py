from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Union

from tracker.timestamps import to_utc

__all__ = [
    "Ongoing",
    "ONGOING",
    "duration_hours",
    "human_duration",
    "format_date",
    "format_date_time",
]


class Ongoing(Enum):
    """Marker for an episode without an end time."""

    ONGOING = "ongoing"

    def __repr__(self) -> str:
        return "ONGOING"


ONGOING = Ongoing.ONGOING

Duration = Union[float, Ongoing]


def duration_hours(episode) -> Duration:
    """Hours between ``start_time`` and ``end_time``, or :data:`ONGOING`.

    A zero-length episode yields ``0.0``, which is distinct from ``ONGOING``.
    """
    if episode.end_time is None:
        return ONGOING
    seconds = (to_utc(episode.end_time) - to_utc(episode.start_time)).total_seconds()
    if seconds < 0:
        raise ValueError("end_time precedes start_time")
    return seconds / 3600


def _round_half_up(value) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def human_duration(hours: Duration) -> str:
    """Render a duration for display.

    >>> human_duration(0.75)
    '45 minutes'
    >>> human_duration(1.5)
    '1h 30m'
    >>> human_duration(25)
    '1 day 1 hour'
    """
    if hours is ONGOING:
        return "Ongoing"
    if hours < 0:
        raise ValueError("Duration cannot be negative")

    total_minutes = _round_half_up(hours * 60)
    if total_minutes < 60:
        return _plural(total_minutes, "minute")

    if total_minutes < 24 * 60:
        whole_hours, minutes = divmod(total_minutes, 60)
        if minutes == 0:
            return _plural(whole_hours, "hour")
        return f"{whole_hours}h {minutes}m"

    days, rest = divmod(_round_half_up(Decimal(total_minutes) / 60), 24)
    if rest == 0:
        return _plural(days, "day")
    return f"{_plural(days, 'day')} {_plural(rest, 'hour')}"


def format_date(dt: datetime) -> str:
    """e.g. ``January 5, 2025``"""
    dt = to_utc(dt)
    return f"{dt:%B} {dt.day}, {dt.year}"


def format_date_time(dt: datetime) -> str:
    """e.g. ``January 5, 2025 2:30 PM``"""
    dt = to_utc(dt)
    hour = dt.hour % 12 or 12
    return f"{format_date(dt)} {hour}:{dt:%M} {dt:%p}"
