"""
Time-expiring cache for vector search results.

Entries are keyed by (query_text, match_count). Stale entries are evicted
lazily on read; once the map grows past the soft size bound, inserts prune
expired entries only (this is not an LRU). Concurrent misses for the same
key share a single in-flight load.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Hashable, List, Optional, Tuple

from tarana.models.activity import SimilarityResult

logger = logging.getLogger(__name__)

CacheKey = Hashable


@dataclass
class CacheEntry:
    result: Tuple[SimilarityResult, ...]
    timestamp: float


class SimilarityCache:
    """Process-local search result cache owned by a VectorStore instance"""

    def __init__(
        self,
        ttl_seconds: float = 600.0,
        max_entries: int = 50,
        clock: Callable[[], float] = time.monotonic
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[CacheKey, CacheEntry] = {}
        self._in_flight: Dict[CacheKey, asyncio.Future] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: CacheKey) -> bool:
        return self.get(key) is not None

    def _is_fresh(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.timestamp < self.ttl_seconds

    def get(self, key: CacheKey) -> Optional[List[SimilarityResult]]:
        """Return the cached result, or None when missing or expired"""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if not self._is_fresh(entry, self._clock()):
            del self._entries[key]
            return None
        return list(entry.result)

    def set(self, key: CacheKey, result: List[SimilarityResult]) -> None:
        self._entries[key] = CacheEntry(result=tuple(result), timestamp=self._clock())
        if len(self._entries) > self.max_entries:
            self.prune_expired()

    def prune_expired(self) -> int:
        """Remove TTL-expired entries; returns how many were removed"""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if not self._is_fresh(e, now)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Pruned {len(expired)} expired vector search cache entries")
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    async def get_or_load(
        self,
        key: CacheKey,
        loader: Callable[[], Awaitable[List[SimilarityResult]]]
    ) -> List[SimilarityResult]:
        """
        Read-through lookup with request coalescing.

        On a miss the loader runs once per key no matter how many callers are
        waiting; its result is cached, its failure is raised to every waiter
        and nothing is cached. Every caller gets its own list.
        """
        cached = self.get(key)
        if cached is not None:
            return cached

        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._load(key, loader))
            self._in_flight[key] = task
            task.add_done_callback(lambda done: self._forget(key, done))
        else:
            logger.debug(f"Joining in-flight vector search for key={key!r}")

        # One caller being cancelled must not cancel the shared load
        shared = await asyncio.shield(task)
        return list(shared)

    async def _load(self, key: CacheKey, loader) -> Tuple[SimilarityResult, ...]:
        result = tuple(await loader())
        self.set(key, result)
        return result

    def _forget(self, key: CacheKey, task: asyncio.Future) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        # Every waiter may have been cancelled; retrieve the failure here
        if not task.cancelled() and task.exception() is not None:
            logger.debug(f"Vector search load failed for key={key!r}: {task.exception()}")
