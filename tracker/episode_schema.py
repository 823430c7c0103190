"""Validation of untrusted episode form input.

The form shape mirrors what the entry form submits: timestamps are strings,
numbers are numbers and tag fields are lists of strings. Validation collects
every violated constraint instead of stopping at the first one.
"""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from tracker.errors import FieldIssue, ValidationFailed
from tracker.vocabulary import PainLocation, Symptom, Trigger

__all__ = [
    "MedicationForm",
    "ContributingFactorsForm",
    "EpisodeForm",
    "validate_episode",
    "issues_for",
]


_MESSAGES = {
    ("start_time", "missing"): "Start time is required",
    ("start_time", "string_too_short"): "Start time is required",
    ("severity", "missing"): "Severity is required",
    ("severity", "greater_than_equal"): "Minimum severity is 1",
    ("severity", "less_than_equal"): "Maximum severity is 10",
    ("pain_location", "missing"): "Select at least one pain location",
    ("pain_location", "too_short"): "Select at least one pain location",
    ("medications.*.name", "missing"): "Medication name is required",
    ("medications.*.name", "string_too_short"): "Medication name is required",
    ("medications.*.dosage", "missing"): "Dosage is required",
    ("medications.*.dosage", "string_too_short"): "Dosage is required",
    ("medications.*.time_taken", "missing"): "Time taken is required",
    ("medications.*.time_taken", "string_too_short"): "Time taken is required",
}


class MedicationForm(BaseModel):
    name: str = Field(min_length=1)
    dosage: str = Field(min_length=1)
    time_taken: str = Field(min_length=1)
    effectiveness: Optional[int] = Field(None, ge=1, le=5, strict=True)


class ContributingFactorsForm(BaseModel):
    hours_of_sleep: Optional[float] = Field(None, ge=0, le=24, strict=True)
    water_intake_oz: Optional[float] = Field(None, ge=0, strict=True)
    weather_conditions: Optional[str] = None
    stress_level: Optional[int] = Field(None, ge=1, le=10, strict=True)


class EpisodeForm(BaseModel):
    start_time: str = Field(min_length=1)
    end_time: Optional[str] = None
    severity: int = Field(ge=1, le=10, strict=True)
    pain_location: List[PainLocation] = Field(min_length=1)
    symptoms: List[Symptom] = Field(default_factory=list)
    triggers: List[Trigger] = Field(default_factory=list)
    medications: List[MedicationForm] = Field(default_factory=list)
    notes: Optional[str] = None
    contributing_factors: Optional[ContributingFactorsForm] = None

    @field_validator("end_time", mode="before")
    def _blank_is_absent(cls, v: Any) -> Any:
        # datetime-local inputs submit "" when left empty
        if isinstance(v, str) and not v.strip():
            return None
        return v


def validate_episode(candidate: Any) -> EpisodeForm:
    """Validate ``candidate`` or raise :class:`ValidationFailed` listing every issue."""
    if isinstance(candidate, EpisodeForm):
        return candidate
    try:
        return EpisodeForm.model_validate(candidate)
    except ValidationError as exc:
        raise ValidationFailed.from_pydantic(exc, _MESSAGES) from exc


def issues_for(candidate: Any) -> List[FieldIssue]:
    """Return the constraint violations for ``candidate``; empty when valid."""
    try:
        validate_episode(candidate)
    except ValidationFailed as exc:
        return exc.issues
    return []
