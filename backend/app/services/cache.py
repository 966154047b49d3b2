"""Bounded in-memory cache for aligned funding series."""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from typing import Callable, NamedTuple

from loguru import logger

from app.domain import AlignedPoint


class HistoryCacheKey(NamedTuple):
    symbol: str
    secondary_symbol: str | None
    secondary_period_hours: float | None
    requested_span_ms: int


class AlignedSeriesCache:
    """Least-recently-used cache with an optional freshness limit per entry."""

    def __init__(
        self,
        max_entries: int,
        *,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: OrderedDict[HistoryCacheKey, tuple[float, tuple[AlignedPoint, ...]]] = (
            OrderedDict()
        )

    def get(self, key: HistoryCacheKey) -> list[AlignedPoint] | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, points = entry
            if self._expired(stored_at):
                logger.debug("Aligned series cache entry expired for {}", key)
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
        logger.debug("Aligned series cache hit for {}", key)
        return list(points)

    def put(self, key: HistoryCacheKey, points: list[AlignedPoint]) -> None:
        with self._lock:
            self._entries[key] = (self._clock(), tuple(points))
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted aligned series cache entry {}", evicted)

    def invalidate(self, key: HistoryCacheKey) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _expired(self, stored_at: float) -> bool:
        return self.ttl_seconds is not None and self._clock() - stored_at > self.ttl_seconds

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and not self._expired(entry[0])
