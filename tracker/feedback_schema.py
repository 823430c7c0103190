"""Feedback and feature-request records."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from tracker.errors import ValidationFailed
from tracker.timestamps import to_utc
from tracker.vocabulary import FeedbackStatus, FeedbackType

__all__ = ["FeedbackForm", "FeedbackPatch", "Feedback", "validate_feedback", "validate_feedback_patch"]

_MESSAGES = {
    ("title", "string_too_short"): "Title must be at least 3 characters",
    ("title", "string_too_long"): "Title must be at most 200 characters",
    ("description", "string_too_short"): "Description must be at least 10 characters",
    ("description", "string_too_long"): "Description must be at most 5000 characters",
}


class FeedbackForm(BaseModel):
    type: FeedbackType
    title: str = Field(min_length=3, max_length=200)
    description: str = Field(min_length=10, max_length=5000)

    @field_validator("title", "description", mode="before")
    def _strip(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v


class FeedbackPatch(FeedbackForm):
    model_config = ConfigDict(extra="forbid")

    type: Optional[FeedbackType] = None
    title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = Field(None, min_length=10, max_length=5000)

    @field_validator("type", "title", "description", mode="before")
    def _not_cleared(cls, v: Any, info) -> Any:
        if v is None:
            raise ValueError(f"{info.field_name} cannot be cleared")
        return v


class Feedback(BaseModel):
    id: str
    user_id: str
    type: FeedbackType
    title: str
    description: str
    status: FeedbackStatus = FeedbackStatus.new
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    def _utc(cls, v: datetime) -> datetime:
        return to_utc(v)


def validate_feedback(candidate: Any) -> FeedbackForm:
    try:
        return FeedbackForm.model_validate(candidate)
    except ValidationError as exc:
        raise ValidationFailed.from_pydantic(exc, _MESSAGES) from exc


def validate_feedback_patch(candidate: Any) -> FeedbackPatch:
    try:
        return FeedbackPatch.model_validate(candidate)
    except ValidationError as exc:
        raise ValidationFailed.from_pydantic(exc, _MESSAGES) from exc
