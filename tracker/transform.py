"""Mapping between form input, domain models and store rows.

Store rows keep timestamps as ISO 8601 strings, tags as plain string lists
and medications as a list of independently serialised JSON objects.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError

from tracker.episode import ContributingFactors, Episode, EpisodeDraft, EpisodePatch, Medication
from tracker.episode_schema import EpisodeForm, validate_episode
from tracker.errors import DataIntegrityError, FieldIssue, ValidationFailed
from tracker.timestamps import format_timestamp, parse_timestamp, utcnow

__all__ = [
    "form_to_draft",
    "check_time_order",
    "parse_patch",
    "to_domain",
    "to_wire",
    "to_wire_insert",
    "to_wire_patch",
    "serialize_medication",
    "parse_medication",
]

logger = logging.getLogger(__name__)

_END_BEFORE_START = "End time must be after start time"


# ---------- form -> domain -------------------------------------------


def _parse_field(value: str, path: str, issues: List[FieldIssue]) -> Optional[datetime]:
    try:
        return parse_timestamp(value)
    except ValueError:
        issues.append(FieldIssue(path, "Invalid date/time"))
        return None


def form_to_draft(form: Union[EpisodeForm, Mapping[str, Any]]) -> EpisodeDraft:
    """Turn validated form input into an :class:`EpisodeDraft`.

    Raw mappings are validated first. Timestamp parsing failures and an end
    time earlier than the start time are reported as :class:`ValidationFailed`.
    """
    form = validate_episode(form)
    issues: List[FieldIssue] = []

    start = _parse_field(form.start_time, "start_time", issues)
    end = _parse_field(form.end_time, "end_time", issues) if form.end_time else None

    medications = []
    for i, med in enumerate(form.medications):
        taken = _parse_field(med.time_taken, f"medications.{i}.time_taken", issues)
        if taken is not None:
            medications.append(
                Medication(
                    name=med.name,
                    dosage=med.dosage,
                    time_taken=taken,
                    effectiveness=med.effectiveness,
                )
            )

    if start is not None and end is not None and end < start:
        issues.append(FieldIssue("end_time", _END_BEFORE_START))
    if issues:
        raise ValidationFailed(issues)

    factors = None
    if form.contributing_factors is not None:
        factors = ContributingFactors(**form.contributing_factors.model_dump())

    return EpisodeDraft(
        start_time=start,
        end_time=end,
        severity=form.severity,
        pain_location=form.pain_location,
        symptoms=form.symptoms,
        triggers=form.triggers,
        medications=medications,
        notes=form.notes,
        contributing_factors=factors,
    )


def parse_patch(changes: Union[EpisodePatch, Mapping[str, Any]]) -> EpisodePatch:
    """Validate a partial update; keys left out stay out of the patch."""
    if isinstance(changes, EpisodePatch):
        patch = changes
    else:
        try:
            patch = EpisodePatch.model_validate(changes)
        except ValidationError as exc:
            raise ValidationFailed.from_pydantic(exc) from exc
    check_time_order(patch.start_time, patch.end_time)
    return patch


def check_time_order(start: Optional[datetime], end: Optional[datetime]) -> None:
    """Reject an end time earlier than the start time; equal times are fine."""
    if start is not None and end is not None and end < start:
        raise ValidationFailed([FieldIssue("end_time", _END_BEFORE_START)])


# ---------- medications ----------------------------------------------


def serialize_medication(med: Medication) -> str:
    data: Dict[str, Any] = {
        "name": med.name,
        "dosage": med.dosage,
        "time_taken": format_timestamp(med.time_taken),
    }
    if med.effectiveness is not None:
        data["effectiveness"] = med.effectiveness
    return json.dumps(data)


def parse_medication(blob: Union[str, Mapping[str, Any]]) -> Medication:
    """Parse one stored medication; accepts the JSON string or an already decoded object."""
    data = json.loads(blob) if isinstance(blob, str) else blob
    if not isinstance(data, Mapping):
        raise ValueError(f"Medication must be an object, got {type(data).__name__}")
    data = dict(data)
    data["time_taken"] = parse_timestamp(data.get("time_taken"))
    return Medication.model_validate(data)


# ---------- store row <-> domain -------------------------------------


def _optional_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    return parse_timestamp(value)


def to_domain(row: Mapping[str, Any]) -> Episode:
    """Build an :class:`Episode` from a store row.

    Malformed rows raise :class:`DataIntegrityError`; nothing is coerced into
    a default that could pass for real data.
    """
    try:
        medications = row.get("medications") or []
        if not isinstance(medications, list):
            raise ValueError("medications must be a list")
        factors = row.get("contributing_factors")
        return Episode.model_validate(
            {
                "id": row["id"],
                "user_id": row["user_id"],
                "start_time": parse_timestamp(row["start_time"]),
                "end_time": _optional_timestamp(row.get("end_time")),
                "severity": row["severity"],
                "pain_location": row["pain_location"],
                "symptoms": row.get("symptoms") or [],
                "triggers": row.get("triggers") or [],
                "medications": [parse_medication(m) for m in medications],
                "notes": row.get("notes"),
                "contributing_factors": factors,
                "created_at": parse_timestamp(row["created_at"]),
                "updated_at": parse_timestamp(row["updated_at"]),
            }
        )
    except (KeyError, TypeError, ValueError) as exc:
        logger.error("Unreadable episode row %s: %s", row.get("id"), exc)
        raise DataIntegrityError(f"Malformed episode row {row.get('id')!r}: {exc}") from exc


def _wire_value(name: str, value: Any) -> Any:
    if value is None:
        return None
    if name in ("start_time", "end_time", "created_at", "updated_at"):
        return format_timestamp(value)
    if name in ("pain_location", "symptoms", "triggers"):
        return [tag.value for tag in value]
    if name == "medications":
        return [serialize_medication(m) for m in value]
    if name == "contributing_factors":
        return value.model_dump(exclude_none=True)
    return value


_DRAFT_FIELDS = tuple(EpisodeDraft.model_fields)


def to_wire_insert(draft: EpisodeDraft, user_id: str) -> Dict[str, Any]:
    """Row for ``insert``; nullable fields are explicitly ``None``."""
    row: Dict[str, Any] = {"user_id": user_id}
    for name in _DRAFT_FIELDS:
        row[name] = _wire_value(name, getattr(draft, name))
    return row


def to_wire(episode: Episode) -> Dict[str, Any]:
    """Full store row for ``episode``; the inverse of :func:`to_domain`."""
    row = to_wire_insert(episode, episode.user_id)
    row["id"] = episode.id
    row["created_at"] = _wire_value("created_at", episode.created_at)
    row["updated_at"] = _wire_value("updated_at", episode.updated_at)
    return row


def to_wire_patch(
    patch: Union[EpisodePatch, Mapping[str, Any]],
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Row patch holding only the fields assigned in ``patch`` plus ``updated_at``."""
    patch = parse_patch(patch)
    data = {name: _wire_value(name, getattr(patch, name)) for name in patch.changed_fields()}
    data["updated_at"] = format_timestamp(now or utcnow())
    return data
