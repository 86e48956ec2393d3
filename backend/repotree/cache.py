"""Per-repository cache for built commit graphs."""

import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .models import RepoTree

DEFAULT_TTL_SECONDS = 60.0
DEFAULT_MAX_ENTRIES = 256


def tree_cache_key(owner: str, repo: str) -> str:
    # Used as given; callers normalise case if they want to.
    return f"{owner}/{repo}"


@dataclass(frozen=True)
class CacheEntry:
    tree: RepoTree
    fetched_at: float


class TreeCache(ABC):
    """What the tree service needs from a cache."""

    @abstractmethod
    def get(self, key: str) -> Optional[RepoTree]:
        """Return the tree for `key` while it is fresh, else None."""

    @abstractmethod
    def put(self, key: str, tree: RepoTree) -> None:
        """Store `tree` under `key`, replacing any previous entry."""


class LRUTreeCache(TreeCache):
    """In-memory cache with a freshness window and a size bound.

    An expired entry is reported as a miss but stays in place until the next
    put for its key overwrites it, or until it is evicted as least recently
    used once more than `max_entries` keys are held.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.time,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[RepoTree]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.fetched_at >= self.ttl_seconds:
                return None
            # touch to make most-recent
            self._entries.pop(key, None)
            self._entries[key] = entry
            return entry.tree

    def put(self, key: str, tree: RepoTree) -> None:
        entry = CacheEntry(tree=tree, fetched_at=self._clock())
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = entry
            # Evict oldest
            while len(self._entries) > self.max_entries:
                first = next(iter(self._entries))
                self._entries.pop(first, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries
