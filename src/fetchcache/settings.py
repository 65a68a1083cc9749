"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Library-wide defaults and explicit config loading.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from .batching.contracts import BatchOptions, FailurePolicy
from .cache.inmemory import ExpiringBoundedStore
from .fetching.contracts import FetchOptions
from .metrics import Metrics

_FAILURE_POLICIES: tuple[str, ...] = ("drop", "requeue", "propagate")


@dataclass(frozen=True, slots=True)
class FetchCacheSettings:
    """Explicit settings used to build stores, orchestrators and processors."""

    max_entries: int = 1000
    default_ttl_s: float = 300.0
    eviction_fraction: float = 0.2

    debounce_s: float = 0.3
    enable_lazy_loading: bool = True
    page_size: int = 50

    batch_size: int = 10
    batch_delay_s: float = 0.1
    batch_failure_policy: FailurePolicy = "drop"
    batch_max_requeues: int = 3

    @staticmethod
    def from_env() -> "FetchCacheSettings":
        """Load settings from `FETCHCACHE_*` environment variables."""
        policy = os.getenv("FETCHCACHE_BATCH_FAILURE_POLICY", "drop").strip().lower()
        if policy not in _FAILURE_POLICIES:
            raise ValueError(f"Unknown FETCHCACHE_BATCH_FAILURE_POLICY: {policy}")
        return FetchCacheSettings(
            max_entries=int(os.getenv("FETCHCACHE_MAX_ENTRIES", "1000")),
            default_ttl_s=float(os.getenv("FETCHCACHE_DEFAULT_TTL_S", "300")),
            eviction_fraction=float(os.getenv("FETCHCACHE_EVICTION_FRACTION", "0.2")),
            debounce_s=float(os.getenv("FETCHCACHE_DEBOUNCE_S", "0.3")),
            enable_lazy_loading=_env_flag("FETCHCACHE_ENABLE_LAZY_LOADING", True),
            page_size=int(os.getenv("FETCHCACHE_PAGE_SIZE", "50")),
            batch_size=int(os.getenv("FETCHCACHE_BATCH_SIZE", "10")),
            batch_delay_s=float(os.getenv("FETCHCACHE_BATCH_DELAY_S", "0.1")),
            batch_failure_policy=policy,  # type: ignore[arg-type]
            batch_max_requeues=int(os.getenv("FETCHCACHE_BATCH_MAX_REQUEUES", "3")),
        )

    def create_store(self, *, metrics: Metrics | None = None) -> ExpiringBoundedStore:
        """Build a store bounded by these settings."""
        return ExpiringBoundedStore(
            max_entries=self.max_entries,
            default_ttl_s=self.default_ttl_s,
            eviction_fraction=self.eviction_fraction,
            metrics=metrics,
        )

    def fetch_options(
        self, cache_key: str, *, cache_ttl_s: float | None = None
    ) -> FetchOptions:
        """Orchestrator options for `cache_key` using these defaults."""
        return FetchOptions(
            cache_key=cache_key,
            cache_ttl_s=self.default_ttl_s if cache_ttl_s is None else cache_ttl_s,
            debounce_s=self.debounce_s,
            enable_lazy_loading=self.enable_lazy_loading,
            page_size=self.page_size,
        )

    def batch_options(self) -> BatchOptions:
        return BatchOptions(
            batch_size=self.batch_size,
            delay_s=self.batch_delay_s,
            failure_policy=self.batch_failure_policy,
            max_requeues=self.batch_max_requeues,
        )


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")
