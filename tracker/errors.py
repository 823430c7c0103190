"""Error taxonomy shared by the validation, transformation and service layers."""

from __future__ import annotations

from typing import Iterable, List, NamedTuple

from pydantic import ValidationError

__all__ = [
    "FieldIssue",
    "TrackerError",
    "ValidationFailed",
    "NotAuthenticatedError",
    "DataIntegrityError",
]


class FieldIssue(NamedTuple):
    path: str
    message: str


class TrackerError(Exception):
    """Base class for errors raised by the tracker core."""


class ValidationFailed(TrackerError):
    """Input violated one or more declared constraints."""

    def __init__(self, issues: Iterable[FieldIssue]):
        self.issues: List[FieldIssue] = list(issues)
        summary = "; ".join(
            f"{i.path}: {i.message}" if i.path else i.message for i in self.issues
        )
        super().__init__(summary or "Validation failed")

    @classmethod
    def from_pydantic(cls, exc: ValidationError, messages=None) -> "ValidationFailed":
        """Flatten a pydantic error into dotted-path issues.

        ``messages`` maps ``(pattern, error_type)`` to a replacement message,
        where list indices in ``pattern`` are written as ``*``.
        """
        messages = messages or {}
        issues = []
        for err in exc.errors():
            path = ".".join(str(part) for part in err["loc"])
            pattern = ".".join(
                "*" if isinstance(part, int) else str(part) for part in err["loc"]
            )
            msg = messages.get((pattern, err["type"]))
            if msg is None:
                msg = err["msg"]
                # pydantic prefixes custom ValueError messages
                if msg.startswith("Value error, "):
                    msg = msg[len("Value error, "):]
            issues.append(FieldIssue(path, msg))
        return cls(issues)

    def to_dict(self) -> List[dict]:
        return [issue._asdict() for issue in self.issues]


class NotAuthenticatedError(TrackerError):
    """An operation needing an owning account ran without one."""

    def __init__(self, message: str = "User not authenticated"):
        super().__init__(message)


class DataIntegrityError(TrackerError):
    """Stored data could not be parsed into the domain model."""
