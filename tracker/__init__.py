"""Episode model, validation, transformation and statistics for the migraine tracker."""

from .duration import ONGOING, duration_hours, human_duration
from .episode_schema import validate_episode
from .errors import DataIntegrityError, NotAuthenticatedError, ValidationFailed
from .stats import compute_stats
from .transform import form_to_draft, to_domain, to_wire, to_wire_patch

__all__ = [
    "ONGOING",
    "duration_hours",
    "human_duration",
    "validate_episode",
    "ValidationFailed",
    "NotAuthenticatedError",
    "DataIntegrityError",
    "compute_stats",
    "form_to_draft",
    "to_domain",
    "to_wire",
    "to_wire_patch",
]
