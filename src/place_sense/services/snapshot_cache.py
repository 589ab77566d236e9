"""Explicit TTL cache for fetched snapshots.

Owned by the persistence boundary (``LocationStore``). Resolution code never
reads through it; it only ever receives the snapshots this cache hands out.

Invalidation is narrow: a mutation drops exactly the keys it affects
(``invalidate``), or a family of per-user keys (``invalidate_prefix``).
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar, cast

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MISSING = object()


@dataclass
class _Entry:
    value: Any
    expires_at: float


@dataclass(frozen=True)
class CacheStats:
    hits: int
    misses: int
    size: int

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


class SnapshotCache:
    """In-memory key/value cache with per-key TTL.

    Usage:
        cache = SnapshotCache(default_ttl_seconds=300)
        rows = await cache.get_or_fetch("locations", fetch_locations)
        cache.invalidate("locations")
    """

    def __init__(
        self,
        default_ttl_seconds: float = 300.0,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._default_ttl = default_ttl_seconds
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._hits = 0
        self._misses = 0

    def __contains__(self, key: str) -> bool:
        return self._lookup(key) is not _MISSING

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str, default: Any = None) -> Any:
        value = self._lookup(key)
        if value is _MISSING:
            self._misses += 1
            return default
        self._hits += 1
        return value

    def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        ttl = self._default_ttl if ttl_seconds is None else ttl_seconds
        self._entries[key] = _Entry(value=value, expires_at=self._clock() + ttl)

    async def get_or_fetch(
        self,
        key: str,
        fetch: Callable[[], Awaitable[T]],
        ttl_seconds: float | None = None,
    ) -> T:
        """Return the cached value, or await ``fetch`` and cache its result.

        Errors from ``fetch`` propagate and nothing is cached.
        """
        value = self._lookup(key)
        if value is not _MISSING:
            self._hits += 1
            return cast(T, value)

        self._misses += 1
        fetched = await fetch()
        self.set(key, fetched, ttl_seconds)
        return fetched

    def invalidate(self, key: str) -> bool:
        """Drop one key. Returns True if it was present."""
        removed = self._entries.pop(key, None) is not None
        if removed:
            logger.debug("Cache invalidated: %s", key)
        return removed

    def invalidate_prefix(self, prefix: str) -> int:
        """Drop every key starting with ``prefix``. Returns the count."""
        keys = [k for k in self._entries if k.startswith(prefix)]
        for key in keys:
            del self._entries[key]
        if keys:
            logger.debug("Cache invalidated %d keys under %s", len(keys), prefix)
        return len(keys)

    def clear(self) -> None:
        self._entries.clear()

    def stats(self) -> CacheStats:
        return CacheStats(hits=self._hits, misses=self._misses, size=len(self._entries))

    def _lookup(self, key: str) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return _MISSING
        if entry.expires_at <= self._clock():
            del self._entries[key]
            return _MISSING
        return entry.value
