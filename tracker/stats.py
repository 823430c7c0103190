"""Descriptive statistics over a collection of episodes.

Everything here is a pure function of its input. Tag rankings order by count
descending and break ties by the tag's position in its vocabulary, so the
result does not depend on episode order.
"""

from __future__ import annotations

from collections import Counter
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Sequence, Type, Union

from pydantic import BaseModel, Field

from tracker.duration import ONGOING, duration_hours
from tracker.episode import EpisodeDraft
from tracker.timestamps import to_utc
from tracker.vocabulary import Symptom, Trigger, Vocabulary

__all__ = [
    "TagCount",
    "MonthCount",
    "EpisodeStats",
    "average_severity",
    "average_duration",
    "top_triggers",
    "top_symptoms",
    "episodes_per_month",
    "compute_stats",
]


class TagCount(BaseModel):
    tag: Union[Trigger, Symptom]
    count: int


class MonthCount(BaseModel):
    month: str
    count: int


class EpisodeStats(BaseModel):
    total_episodes: int = 0
    average_severity: float = 0.0
    average_duration: float = 0.0
    most_common_triggers: List[TagCount] = Field(default_factory=list)
    most_common_symptoms: List[TagCount] = Field(default_factory=list)
    episodes_per_month: List[MonthCount] = Field(default_factory=list)


def _round1(value: float) -> float:
    return float(Decimal(repr(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def average_severity(episodes: Sequence[EpisodeDraft]) -> float:
    """Mean severity to one decimal place; ``0.0`` for no episodes."""
    if not episodes:
        return 0.0
    return _round1(sum(ep.severity for ep in episodes) / len(episodes))


def average_duration(episodes: Sequence[EpisodeDraft]) -> float:
    """Mean duration in hours of completed episodes; ongoing ones are skipped."""
    hours = [h for h in (duration_hours(ep) for ep in episodes) if h is not ONGOING]
    if not hours:
        return 0.0
    return _round1(sum(hours) / len(hours))


def _rank(tags: Iterable[Vocabulary], vocab: Type[Vocabulary], n: int) -> List[TagCount]:
    counts = Counter(vocab.parse(tag) for tag in tags)
    ranked = sorted(counts.items(), key=lambda item: (-item[1], vocab.ordinal(item[0])))
    return [TagCount(tag=tag, count=count) for tag, count in ranked[: max(n, 0)]]


def top_triggers(episodes: Sequence[EpisodeDraft], n: int = 5) -> List[TagCount]:
    return _rank((t for ep in episodes for t in ep.triggers), Trigger, n)


def top_symptoms(episodes: Sequence[EpisodeDraft], n: int = 5) -> List[TagCount]:
    return _rank((s for ep in episodes for s in ep.symptoms), Symptom, n)


def episodes_per_month(episodes: Sequence[EpisodeDraft]) -> List[MonthCount]:
    counts = Counter(f"{to_utc(ep.start_time):%Y-%m}" for ep in episodes)
    return [MonthCount(month=month, count=counts[month]) for month in sorted(counts)]


def compute_stats(episodes: Iterable[EpisodeDraft], top_n: int = 5) -> EpisodeStats:
    episodes = list(episodes)
    return EpisodeStats(
        total_episodes=len(episodes),
        average_severity=average_severity(episodes),
        average_duration=average_duration(episodes),
        most_common_triggers=top_triggers(episodes, top_n),
        most_common_symptoms=top_symptoms(episodes, top_n),
        episodes_per_month=episodes_per_month(episodes),
    )
