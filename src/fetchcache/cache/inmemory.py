"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Process-local expiring store with a hard entry bound.
"""

from __future__ import annotations

import heapq
import logging
import math
import time
from collections.abc import Callable, Iterator
from typing import Any

from ..metrics import Metrics, NoOpMetrics
from .base import CacheEntry, CacheStats, CacheStore, KeyMatcher, compile_matcher

logger = logging.getLogger("fetchcache.cache.inmemory")

Clock = Callable[[], float]


class ExpiringBoundedStore(CacheStore):
    """
    In-memory key/value store with per-entry TTL and a capacity bound.

    Expiration is lazy: an expired entry is dropped when a lookup touches it
    or when a capacity-triggered cleanup runs. Cleanup happens only inside
    ``set`` when the store is at capacity; it first drops every expired
    entry and then, if still full, evicts the oldest
    ``ceil(max_entries * eviction_fraction)`` entries by insertion time.

    Oldest-first selection uses a min-heap of ``(inserted_at, seq, key)``
    with lazy deletion; stale heap rows are skipped and the heap is rebuilt
    once it grows well past the live entry count.

    Writes from in-flight fetches can be fenced with ``reserve`` /
    ``set(..., generation=g)``: the commit is accepted only if ``g`` is still
    the latest outstanding reservation for the key, so an invalidation or a
    fresher write that happened meanwhile always wins.
    """

    def __init__(
        self,
        *,
        max_entries: int = 1000,
        default_ttl_s: float = 300.0,
        eviction_fraction: float = 0.2,
        clock: Clock = time.monotonic,
        metrics: Metrics | None = None,
    ) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be > 0")
        if default_ttl_s <= 0:
            raise ValueError("default_ttl_s must be > 0")
        if not 0 < eviction_fraction <= 1:
            raise ValueError("eviction_fraction must be in (0, 1]")

        self._max_entries = max_entries
        self._default_ttl_s = default_ttl_s
        self._eviction_fraction = eviction_fraction
        self._clock = clock
        self._metrics: Metrics = metrics or NoOpMetrics()

        self._rows: dict[str, CacheEntry] = {}
        self._heap: list[tuple[float, int, str]] = []
        self._seq = 0
        self._generation = 0
        self._reservations: dict[str, int] = {}

        self._hits = 0
        self._misses = 0
        self._expirations = 0
        self._evictions = 0

    @property
    def max_entries(self) -> int:
        return self._max_entries

    @property
    def size(self) -> int:
        return len(self._rows)

    def __len__(self) -> int:
        return len(self._rows)

    def __contains__(self, key: object) -> bool:
        row = self._rows.get(key)  # type: ignore[arg-type]
        return row is not None and not row.is_expired(self._clock())

    def keys(self) -> Iterator[str]:
        """Iterate over keys of entries that are not yet expired."""
        now = self._clock()
        live = [key for key, row in self._rows.items() if not row.is_expired(now)]
        return iter(live)

    def get(self, key: str, default: Any = None) -> Any:
        row = self._rows.get(key)
        if row is None:
            self._record_miss()
            return default
        if row.is_expired(self._clock()):
            del self._rows[key]
            self._expirations += 1
            self._metrics.incr("store_expirations_total")
            self._record_miss()
            return default
        self._hits += 1
        self._metrics.incr("store_hits_total")
        return row.value

    def set(
        self,
        key: str,
        value: Any,
        ttl_s: float | None = None,
        *,
        generation: int | None = None,
    ) -> bool:
        if generation is not None:
            if self._reservations.get(key) != generation:
                logger.debug(
                    "Rejected stale write for key=%s (generation=%d)", key, generation
                )
                return False
            del self._reservations[key]
        else:
            self._reservations.pop(key, None)

        now = self._clock()
        if len(self._rows) >= self._max_entries:
            self._cleanup(now)

        ttl = self._default_ttl_s if ttl_s is None else ttl_s
        self._seq += 1
        self._rows[key] = CacheEntry(
            value=value,
            inserted_at_s=now,
            expires_at_s=now + ttl,
            seq=self._seq,
        )
        heapq.heappush(self._heap, (now, self._seq, key))
        self._maybe_compact()
        return True

    def invalidate(self, key: str) -> None:
        self._rows.pop(key, None)
        self._reservations.pop(key, None)

    def invalidate_pattern(self, matcher: KeyMatcher) -> int:
        """Remove every entry whose key matches; returns the removed count."""
        predicate = compile_matcher(matcher)
        doomed = [key for key in self._rows if predicate(key)]
        for key in doomed:
            del self._rows[key]
        for key in [key for key in self._reservations if predicate(key)]:
            del self._reservations[key]
        return len(doomed)

    def clear(self) -> None:
        self._rows.clear()
        self._heap.clear()
        self._reservations.clear()

    def reserve(self, key: str) -> int:
        """Open a write generation for ``key``; later reservations supersede it."""
        self._generation += 1
        self._reservations[key] = self._generation
        return self._generation

    def release(self, key: str, generation: int) -> None:
        """Drop a reservation that will not be committed."""
        if self._reservations.get(key) == generation:
            del self._reservations[key]

    def stats(self) -> CacheStats:
        return CacheStats(
            hits=self._hits,
            misses=self._misses,
            expirations=self._expirations,
            evictions=self._evictions,
            size=len(self._rows),
            max_entries=self._max_entries,
        )

    def _record_miss(self) -> None:
        self._misses += 1
        self._metrics.incr("store_misses_total")

    def _cleanup(self, now: float) -> None:
        expired = [key for key, row in self._rows.items() if row.is_expired(now)]
        for key in expired:
            del self._rows[key]
        if expired:
            self._expirations += len(expired)
            self._metrics.incr("store_expirations_total", len(expired))

        evicted = 0
        if len(self._rows) >= self._max_entries:
            quota = math.ceil(self._max_entries * self._eviction_fraction)
            while evicted < quota and self._heap:
                _, seq, key = heapq.heappop(self._heap)
                row = self._rows.get(key)
                if row is None or row.seq != seq:
                    continue
                del self._rows[key]
                evicted += 1
            self._evictions += evicted
            self._metrics.incr("store_evictions_total", evicted)

        logger.debug(
            "Store cleanup removed %d expired and %d oldest entries (size=%d)",
            len(expired),
            evicted,
            len(self._rows),
        )

    def _maybe_compact(self) -> None:
        if len(self._heap) <= 2 * len(self._rows) + 64:
            return
        self._heap = [
            (row.inserted_at_s, row.seq, key) for key, row in self._rows.items()
        ]
        heapq.heapify(self._heap)
