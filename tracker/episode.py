"""Domain models for migraine episodes."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from tracker.timestamps import to_utc
from tracker.vocabulary import PainLocation, Symptom, Trigger

__all__ = [
    "Medication",
    "ContributingFactors",
    "EpisodeDraft",
    "Episode",
    "EpisodePatch",
    "NULLABLE_FIELDS",
]

NULLABLE_FIELDS = frozenset({"end_time", "notes", "contributing_factors"})


class Medication(BaseModel):
    """A dose taken during an episode. Has no identity of its own."""

    name: str = Field(min_length=1)
    dosage: str = Field(min_length=1)
    time_taken: datetime
    effectiveness: Optional[int] = Field(None, ge=1, le=5, strict=True)

    @field_validator("time_taken")
    def _utc(cls, v: datetime) -> datetime:
        return to_utc(v)


class ContributingFactors(BaseModel):
    hours_of_sleep: Optional[float] = Field(None, ge=0, le=24, strict=True)
    water_intake_oz: Optional[float] = Field(None, ge=0, strict=True)
    weather_conditions: Optional[str] = None
    stress_level: Optional[int] = Field(None, ge=1, le=10, strict=True)


class EpisodeDraft(BaseModel):
    """Everything the user supplies when recording an episode."""

    start_time: datetime
    end_time: Optional[datetime] = None
    severity: int = Field(ge=1, le=10, strict=True)
    pain_location: List[PainLocation] = Field(min_length=1)
    symptoms: List[Symptom] = Field(default_factory=list)
    triggers: List[Trigger] = Field(default_factory=list)
    medications: List[Medication] = Field(default_factory=list)
    notes: Optional[str] = None
    contributing_factors: Optional[ContributingFactors] = None

    @field_validator("start_time", "end_time")
    def _utc(cls, v: datetime | None) -> datetime | None:
        return to_utc(v) if v is not None else None

    @model_validator(mode="after")
    def _check_times(self) -> "EpisodeDraft":
        if self.end_time is not None and self.end_time < self.start_time:
            raise ValueError("end_time must be on or after start_time")
        return self

    @property
    def is_ongoing(self) -> bool:
        return self.end_time is None


class Episode(EpisodeDraft):
    """A persisted episode as read back from the store."""

    id: str
    user_id: str
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    def _utc_stamps(cls, v: datetime) -> datetime:
        return to_utc(v)


class EpisodePatch(BaseModel):
    """Changed fields of an episode.

    Fields never assigned are left untouched by an update; only
    ``NULLABLE_FIELDS`` may be cleared with ``None``.
    """

    model_config = ConfigDict(extra="forbid")

    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    severity: Optional[int] = Field(None, ge=1, le=10, strict=True)
    pain_location: Optional[List[PainLocation]] = Field(None, min_length=1)
    symptoms: Optional[List[Symptom]] = None
    triggers: Optional[List[Trigger]] = None
    medications: Optional[List[Medication]] = None
    notes: Optional[str] = None
    contributing_factors: Optional[ContributingFactors] = None

    @field_validator(
        "start_time", "severity", "pain_location", "symptoms", "triggers", "medications",
        mode="before",
    )
    def _not_cleared(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be cleared")
        return v

    @field_validator("start_time", "end_time")
    def _utc(cls, v: datetime | None) -> datetime | None:
        return to_utc(v) if v is not None else None

    def changed_fields(self) -> List[str]:
        """Explicitly assigned fields in declaration order."""
        return [name for name in type(self).model_fields if name in self.model_fields_set]
