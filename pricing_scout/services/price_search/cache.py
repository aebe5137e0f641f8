"""In-memory TTL cache shared by concurrent price lookups.

Entries map a key to a tuple of price points plus an expiry instant.
Expired entries are dropped when read (or by ``sweep``) and are never
served. ``coalesce`` makes concurrent callers that miss on the same key
share a single in-flight fetch.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional, Sequence, Tuple, TypeVar

from .models import PricePoint

logger = logging.getLogger("price_search.cache")

T = TypeVar("T")


@dataclass(slots=True)
class CacheEntry:
    """Cached price points and the monotonic instant they expire at."""

    points: Tuple[PricePoint, ...]
    expires_at: float


@dataclass(slots=True)
class CacheStats:
    """Counters exposed for monitoring."""

    hits: int
    misses: int
    entries: int
    inflight: int

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


class PriceCache:
    """Concurrency-safe TTL cache keyed by request fingerprint."""

    def __init__(
        self,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._inflight: Dict[str, asyncio.Future] = {}
        self._lock = asyncio.Lock()
        self._hits = 0
        self._misses = 0

    async def get(self, key: str) -> Optional[Tuple[PricePoint, ...]]:
        """Return live points for ``key`` or ``None`` on miss/expiry."""
        async with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry.expires_at <= self._clock():
                del self._entries[key]
                entry = None
            if entry is None:
                self._misses += 1
                logger.debug("Cache miss for %s", key)
                return None
            self._hits += 1
            logger.debug("Cache hit for %s", key)
            return entry.points

    async def peek(self, key: str) -> Optional[Tuple[PricePoint, ...]]:
        """Like ``get`` but without touching the hit/miss counters."""
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None or entry.expires_at <= self._clock():
                return None
            return entry.points

    async def set(
        self,
        key: str,
        points: Sequence[PricePoint],
        ttl_seconds: float | None = None,
    ) -> None:
        """Replace whatever is stored under ``key``."""
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        async with self._lock:
            self._entries[key] = CacheEntry(
                points=tuple(points), expires_at=self._clock() + ttl
            )

    async def coalesce(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        """Run ``factory`` once for all concurrent callers of ``key``.

        The shared task is shielded: a caller that gets cancelled (for
        instance by a deadline) abandons its wait but the fetch keeps
        running for the other callers and still completes.
        """
        async with self._lock:
            task = self._inflight.get(key)
            if task is None:
                task = asyncio.ensure_future(factory())
                self._inflight[key] = task
                task.add_done_callback(lambda done: self._forget(key, done))
            else:
                logger.debug("Joining in-flight fetch for %s", key)
        return await asyncio.shield(task)

    def _forget(self, key: str, task: asyncio.Future) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if not task.cancelled() and task.exception() is not None:
            logger.warning("In-flight fetch for %s failed: %s", key, task.exception())

    async def sweep(self) -> int:
        """Drop every expired entry; return how many were removed."""
        async with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.info("Swept %d expired cache entries", len(expired))
        return len(expired)

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def stats(self) -> CacheStats:
        return CacheStats(
            hits=self._hits,
            misses=self._misses,
            entries=len(self._entries),
            inflight=len(self._inflight),
        )

    def __len__(self) -> int:
        return len(self._entries)
