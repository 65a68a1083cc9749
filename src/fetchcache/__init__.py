"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Client-side fetch caching and work batching for asyncio applications.

Three pieces, usable on their own or together:

- ``ExpiringBoundedStore``: a bounded key/value store with per-entry TTL.
- ``FetchOrchestrator``: cache-first, cancel-on-supersede loading of one
  producer, with debounced refresh and teardown-safe state.
- ``BatchProcessor``: groups enqueued work items into timed, bounded chunks.

Quick start::

    from fetchcache import ExpiringBoundedStore, FetchOptions, FetchOrchestrator

    store = ExpiringBoundedStore(max_entries=500)
    async with FetchOrchestrator(
        load_sites, store=store, options=FetchOptions(cache_key="sites")
    ) as sites:
        await sites.fetch()
        print(sites.data)
"""

from .batching import BatchOptions, BatchProcessor, FailurePolicy
from .cache import (
    CacheStats,
    CacheStore,
    ExpiringBoundedStore,
    list_stores,
    register_store,
    resolve_store,
    unregister_store,
)
from .cancellation import (
    Aborted,
    CancellationToken,
    Failed,
    FetchResult,
    Ok,
    current_cancellation_token,
)
from .errors import (
    BatchHandlerError,
    FetchCacheError,
    OperationAborted,
    StoreRegistryError,
)
from .fetching import (
    Debouncer,
    FetchOptions,
    FetchOrchestrator,
    FetchState,
    query_cache_key,
    query_orchestrator,
)
from .metrics import Metrics, NoOpMetrics, PrometheusMetrics
from .settings import FetchCacheSettings

__all__ = [
    "ExpiringBoundedStore",
    "CacheStore",
    "CacheStats",
    "register_store",
    "unregister_store",
    "resolve_store",
    "list_stores",
    "FetchOrchestrator",
    "FetchOptions",
    "FetchState",
    "Debouncer",
    "query_cache_key",
    "query_orchestrator",
    "BatchProcessor",
    "BatchOptions",
    "FailurePolicy",
    "CancellationToken",
    "current_cancellation_token",
    "FetchResult",
    "Ok",
    "Aborted",
    "Failed",
    "FetchCacheError",
    "OperationAborted",
    "StoreRegistryError",
    "BatchHandlerError",
    "Metrics",
    "NoOpMetrics",
    "PrometheusMetrics",
    "FetchCacheSettings",
]
