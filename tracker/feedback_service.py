from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

from pydantic import ValidationError

from store.repository import TableStore
from tracker.errors import DataIntegrityError, NotAuthenticatedError
from tracker.feedback_schema import Feedback, validate_feedback, validate_feedback_patch
from tracker.timestamps import format_timestamp, utcnow

__all__ = ["FeedbackService"]

logger = logging.getLogger(__name__)


def _to_feedback(row: Mapping[str, Any]) -> Feedback:
    try:
        return Feedback.model_validate(dict(row))
    except ValidationError as exc:
        raise DataIntegrityError(f"Malformed feedback row {row.get('id')!r}: {exc}") from exc


class FeedbackService:
    """Feedback and feature requests submitted by one account."""

    table = "feedback"

    def __init__(self, store: TableStore, user_id: Optional[str]):
        self.store = store
        self.user_id = user_id

    def _owner(self) -> str:
        if not self.user_id:
            raise NotAuthenticatedError()
        return self.user_id

    def list_feedback(self) -> List[Feedback]:
        rows = self.store.list(self.table, self._owner(), order_by="created_at", descending=True)
        return [_to_feedback(row) for row in rows]

    def get_feedback(self, feedback_id: str) -> Feedback:
        return _to_feedback(self.store.get(self.table, self._owner(), feedback_id))

    def create_feedback(self, candidate: Any) -> Feedback:
        owner = self._owner()
        form = validate_feedback(candidate)
        row = self.store.insert(
            self.table,
            {"user_id": owner, **form.model_dump(mode="json")},
        )
        feedback = _to_feedback(row)
        logger.info("Recorded %s %s", feedback.type.value, feedback.id)
        return feedback

    def update_feedback(self, feedback_id: str, changes: Any) -> Feedback:
        owner = self._owner()
        patch = validate_feedback_patch(changes)
        data = patch.model_dump(mode="json", exclude_unset=True)
        data["updated_at"] = format_timestamp(utcnow())
        return _to_feedback(self.store.update(self.table, owner, feedback_id, data))

    def delete_feedback(self, feedback_id: str) -> None:
        self.store.delete(self.table, self._owner(), feedback_id)
        logger.info("Deleted feedback %s", feedback_id)
