"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Metrics adapters for store, orchestrator and batch observability.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol


COUNTER_DESCRIPTIONS: dict[str, str] = {
    "store_hits_total": "Store lookups answered by a live entry",
    "store_misses_total": "Store lookups that found no live entry",
    "store_expirations_total": "Store entries dropped after their TTL elapsed",
    "store_evictions_total": "Store entries evicted oldest-first to stay under capacity",
    "fetch_total": "Orchestrator fetches by outcome (cache_hit, ok, failed, aborted, discarded, cancelled)",
    "batch_drained_total": "Chunks handed to a batch handler that completed",
    "batch_failed_total": "Chunks whose batch handler raised, by failure policy",
}


class Metrics(Protocol):
    """Minimal metrics interface used across fetchcache components."""

    def incr(
        self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None
    ) -> None:
        """Increment a counter metric."""


class NoOpMetrics:
    """Default metrics sink when no metrics backend is provided."""

    def incr(
        self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None
    ) -> None:
        _ = name
        _ = value
        _ = tags


class PrometheusMetrics(Metrics):
    """
    Prometheus-backed metrics adapter.

    Requires `prometheus_client` package.
    """

    def __init__(self, *, namespace: str = "fetchcache", registry=None) -> None:
        try:
            from prometheus_client import REGISTRY, Counter
        except ModuleNotFoundError as exc:  # pragma: no cover
            raise RuntimeError(
                "PrometheusMetrics requires `prometheus_client` to be installed."
            ) from exc

        self._Counter = Counter
        self._namespace = namespace
        self._registry = registry if registry is not None else REGISTRY
        self._counters: dict[str, object] = {}

    def incr(self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None) -> None:
        label_names = tuple(sorted((tags or {}).keys()))
        key = f"{name}|{','.join(label_names)}"
        counter = self._counters.get(key)
        if counter is None:
            counter = self._Counter(
                name=name,
                documentation=COUNTER_DESCRIPTIONS.get(name, f"fetchcache counter {name}"),
                namespace=self._namespace,
                labelnames=label_names,
                registry=self._registry,
            )
            self._counters[key] = counter

        if label_names:
            label_values = [str((tags or {})[label]) for label in label_names]
            counter.labels(*label_values).inc(value)
        else:
            counter.inc(value)
