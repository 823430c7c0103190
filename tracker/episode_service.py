"""Episode operations for one signed-in account.

The service is built per account with an explicit store handle; there is no
shared module-level client. Reads go through an optional :class:`QueryCache`
and writes keep it in step: the list entry is invalidated and the single
episode entry is replaced or dropped.
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional, Union

from store.repository import TableStore
from tracker.episode import Episode, EpisodeDraft, EpisodePatch
from tracker.errors import NotAuthenticatedError
from tracker.query_cache import EPISODES_KEY, QueryCache, episode_key
from tracker.stats import EpisodeStats, compute_stats
from tracker.transform import (
    check_time_order,
    form_to_draft,
    parse_patch,
    to_domain,
    to_wire_insert,
    to_wire_patch,
)

__all__ = ["EpisodeService"]

logger = logging.getLogger(__name__)


class EpisodeService:
    table = "episodes"

    def __init__(
        self,
        store: TableStore,
        user_id: Optional[str],
        cache: Optional[QueryCache] = None,
    ):
        self.store = store
        self.user_id = user_id
        self.cache = cache if cache is not None else QueryCache()

    def _owner(self) -> str:
        if not self.user_id:
            raise NotAuthenticatedError()
        return self.user_id

    # ---------- reads --------------------------------------------------

    def list_episodes(self) -> List[Episode]:
        """All of the account's episodes, newest start first."""
        owner = self._owner()
        return self.cache.fetch(
            EPISODES_KEY,
            lambda: [
                to_domain(row)
                for row in self.store.list(self.table, owner, order_by="start_time", descending=True)
            ],
        )

    def get_episode(self, episode_id: str) -> Episode:
        owner = self._owner()
        return self.cache.fetch(
            episode_key(episode_id),
            lambda: to_domain(self.store.get(self.table, owner, episode_id)),
        )

    def get_stats(self, top_n: int = 5) -> EpisodeStats:
        return compute_stats(self.list_episodes(), top_n=top_n)

    # ---------- writes -------------------------------------------------

    def create_episode(self, draft: EpisodeDraft) -> Episode:
        owner = self._owner()
        row = self.store.insert(self.table, to_wire_insert(draft, owner))
        episode = to_domain(row)
        logger.info("Created episode %s", episode.id)

        self.cache.invalidate(EPISODES_KEY)
        self.cache.set(episode_key(episode.id), episode)
        return episode

    def create_from_form(self, candidate: Any) -> Episode:
        """Validate raw form input and record it as a new episode."""
        self._owner()
        return self.create_episode(form_to_draft(candidate))

    def update_episode(
        self, episode_id: str, changes: Union[EpisodePatch, Mapping[str, Any]]
    ) -> Episode:
        """Apply only the assigned fields of ``changes``.

        When either timestamp changes, the resulting start/end pair is checked
        against the stored episode before anything is written.
        """
        owner = self._owner()
        patch = parse_patch(changes)

        touched = patch.model_fields_set & {"start_time", "end_time"}
        if touched:
            current = to_domain(self.store.get(self.table, owner, episode_id))
            start = patch.start_time if "start_time" in touched else current.start_time
            end = patch.end_time if "end_time" in touched else current.end_time
            check_time_order(start, end)

        row = self.store.update(self.table, owner, episode_id, to_wire_patch(patch))
        episode = to_domain(row)
        logger.info("Updated episode %s (%s)", episode_id, ", ".join(patch.changed_fields()) or "no fields")

        self.cache.set(episode_key(episode_id), episode)
        self.cache.invalidate(EPISODES_KEY)
        return episode

    def delete_episode(self, episode_id: str) -> None:
        owner = self._owner()
        self.store.delete(self.table, owner, episode_id)
        logger.info("Deleted episode %s", episode_id)

        self.cache.invalidate(episode_key(episode_id))
        self.cache.invalidate(EPISODES_KEY)
