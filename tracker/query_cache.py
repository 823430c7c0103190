from __future__ import annotations

import threading
from typing import Any, Callable, Dict, Hashable, Tuple

__all__ = ["QueryCache", "EPISODES_KEY", "episode_key"]

Key = Tuple[Hashable, ...]

EPISODES_KEY: Key = ("episodes",)


def episode_key(episode_id: str) -> Key:
    return ("episodes", episode_id)


class QueryCache:
    """Results keyed by resource identity.

    Entries stay until a write invalidates or replaces them; there is no
    expiry. Consistent with the last successful write made through the
    owning service, nothing stronger.

    Safe to share between threads. Every ``set``/``invalidate`` bumps the
    key's generation, and a ``fetch`` whose load overlapped such a write
    returns what it loaded without storing it.
    """

    def __init__(self) -> None:
        self._entries: Dict[Key, Any] = {}
        self._generations: Dict[Key, int] = {}
        self._epoch = 0
        self._lock = threading.Lock()

    def __contains__(self, key: Key) -> bool:
        with self._lock:
            return key in self._entries

    def _stamp(self, key: Key) -> Tuple[int, int]:
        return self._epoch, self._generations.get(key, 0)

    def _bump(self, key: Key) -> None:
        self._generations[key] = self._generations.get(key, 0) + 1

    def get(self, key: Key, default: Any = None) -> Any:
        with self._lock:
            return self._entries.get(key, default)

    def fetch(self, key: Key, loader: Callable[[], Any]) -> Any:
        """Return the cached value for ``key``, loading and storing it on a miss."""
        with self._lock:
            if key in self._entries:
                return self._entries[key]
            stamp = self._stamp(key)

        # the loader runs unlocked; it may be slow and may write through this cache
        value = loader()

        with self._lock:
            if self._stamp(key) == stamp:
                self._entries[key] = value
        return value

    def set(self, key: Key, value: Any) -> None:
        with self._lock:
            self._bump(key)
            self._entries[key] = value

    def invalidate(self, key: Key) -> None:
        with self._lock:
            self._bump(key)
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._epoch += 1
            self._entries.clear()
