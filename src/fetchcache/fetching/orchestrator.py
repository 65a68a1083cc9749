"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Fetch orchestrator: cache-first, cancel-on-supersede data loading for one consumer.
"""

from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
from collections.abc import Callable, Sequence
from typing import Any, Generic, TypeVar

from ..cache.base import CacheStore
from ..cache.registry import resolve_store
from ..cancellation import (
    Aborted,
    CancellationToken,
    Failed,
    FetchResult,
    Ok,
    Producer,
    run_producer,
)
from ..metrics import Metrics, NoOpMetrics
from .contracts import FetchOptions, FetchState
from .debounce import Debouncer

logger = logging.getLogger("fetchcache.fetching.orchestrator")

T = TypeVar("T")

StateListener = Callable[[FetchState], None]

_MISSING = object()


class FetchOrchestrator(Generic[T]):
    """
    Wraps one asynchronous producer behind a shared store.

    ``fetch`` consults the store under ``options.cache_key`` before invoking
    the producer and writes fresh results back with ``options.cache_ttl_s``.
    Starting a fetch cancels the one still outstanding, and a generation
    counter makes sure only the most recently started fetch can commit, even
    when a cancelled producer ignores its token and returns anyway.

    After ``close()`` nothing on the instance mutates, whatever the producer
    does later.
    """

    def __init__(
        self,
        producer: Producer[T],
        *,
        store: str | CacheStore,
        options: FetchOptions | None = None,
        metrics: Metrics | None = None,
        on_change: StateListener | None = None,
    ) -> None:
        self._producer = producer
        self._store = resolve_store(store)
        self._options = options or FetchOptions()
        self._metrics: Metrics = metrics or NoOpMetrics()
        self._on_change = on_change
        self._state = FetchState()
        self._token: CancellationToken | None = None
        self._generation = 0
        self._closed = False
        self._background: set[asyncio.Task[Any]] = set()
        self._debouncer = Debouncer(self._refresh_now, self._options.debounce_s)

    async def __aenter__(self) -> "FetchOrchestrator[T]":
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    @property
    def options(self) -> FetchOptions:
        return self._options

    @property
    def cache_key(self) -> str:
        return self._options.cache_key

    @property
    def store(self) -> CacheStore:
        return self._store

    @property
    def state(self) -> FetchState:
        """Snapshot of the current state; mutating it has no effect."""
        return dataclasses.replace(self._state)

    @property
    def data(self) -> T | None:
        return self._state.data

    @property
    def loading(self) -> bool:
        return self._state.loading

    @property
    def error(self) -> BaseException | None:
        return self._state.error

    @property
    def has_more(self) -> bool:
        return self._state.has_more

    @property
    def current_page(self) -> int:
        return self._state.page

    @property
    def is_from_cache(self) -> bool:
        """Whether a settled value is currently served by the store."""
        return not self._state.loading and self._options.cache_key in self._store

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> asyncio.Task[FetchResult[T]]:
        """Schedule the initial cache-first load in the background."""
        return self._spawn(self.fetch())

    async def fetch(self, *, ignore_cache: bool = False) -> FetchResult[T]:
        """
        Load data, preferring the store unless ``ignore_cache`` is set.

        Returns the outcome as ``Ok``, ``Aborted`` or ``Failed``; failures are
        also reflected in ``error``. Never raises for producer errors.
        """
        if self._closed:
            return Aborted("closed")

        self._cancel_inflight("superseded")
        self._generation += 1
        generation = self._generation
        key = self._options.cache_key

        if not ignore_cache:
            cached = self._store.get(key, _MISSING)
            if cached is not _MISSING:
                self._update(
                    data=cached,
                    loading=False,
                    error=None,
                    from_cache=True,
                    status="success",
                )
                self._metrics.incr("fetch_total", tags={"outcome": "cache_hit"})
                return Ok(cached)

        token = CancellationToken()
        self._token = token
        write_generation = self._store.reserve(key)
        self._update(loading=True, error=None, status="loading")

        try:
            outcome = await run_producer(self._producer, token)
        except asyncio.CancelledError:
            self._store.release(key, write_generation)
            if generation == self._generation:
                token.cancel("caller cancelled")
                self._token = None
                self._settle_idle()
            self._metrics.incr("fetch_total", tags={"outcome": "cancelled"})
            raise

        if self._closed or token.cancelled or generation != self._generation:
            self._store.release(key, write_generation)
            self._metrics.incr("fetch_total", tags={"outcome": "discarded"})
            logger.debug(
                "Discarded fetch result for key=%s (generation=%d)", key, generation
            )
            return Aborted(token.reason or "superseded")

        self._token = None
        if isinstance(outcome, Ok):
            self._store.set(
                key,
                outcome.value,
                self._options.cache_ttl_s,
                generation=write_generation,
            )
            self._update(
                data=outcome.value,
                loading=False,
                from_cache=False,
                status="success",
            )
            self._metrics.incr("fetch_total", tags={"outcome": "ok"})
            return outcome

        self._store.release(key, write_generation)
        if isinstance(outcome, Aborted):
            self._settle_idle()
            self._metrics.incr("fetch_total", tags={"outcome": "aborted"})
            return outcome

        if isinstance(outcome, Failed):
            logger.warning("Producer for key=%s failed: %s", key, outcome.error)
            self._update(loading=False, error=outcome.error, status="failed")
            self._metrics.incr("fetch_total", tags={"outcome": "failed"})
        return outcome

    def refresh(self) -> None:
        """Request a cache-bypassing fetch, debounced on the trailing edge."""
        if self._closed:
            return
        self._debouncer.trigger()

    def invalidate_cache(self) -> None:
        """Drop this instance's key from the store; in-flight work continues."""
        self._store.invalidate(self._options.cache_key)

    def load_more(self) -> None:
        """Advance the page counter for paginated producers."""
        if self._closed or not self._options.enable_lazy_loading:
            return
        if self._state.loading:
            return
        self._update(page=self._state.page + 1)

    def close(self) -> None:
        """
        Tear down the instance.

        Signals the outstanding producer's token and cancels the pending
        refresh timer. No state changes happen after this call.
        """
        if self._closed:
            return
        self._closed = True
        self._cancel_inflight("closed")
        self._debouncer.close()

    async def aclose(self) -> None:
        """Tear down and wait for background work to unwind."""
        self.close()
        await self._debouncer.aclose()
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def _refresh_now(self) -> None:
        await self.fetch(ignore_cache=True)

    def _settle_idle(self) -> None:
        settled = "success" if self._state.data is not None else "idle"
        self._update(loading=False, status=settled)

    def _cancel_inflight(self, reason: str) -> None:
        if self._token is not None:
            self._token.cancel(reason)
            self._token = None

    def _spawn(self, coro: Any) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    def _update(self, **changes: Any) -> None:
        if self._closed:
            return
        for name, value in changes.items():
            setattr(self._state, name, value)
        if self._on_change is None:
            return
        try:
            self._on_change(self.state)
        except Exception:  # noqa: BLE001
            logger.exception(
                "State listener failed for key=%s", self._options.cache_key
            )


def query_cache_key(dependencies: Sequence[Any]) -> str:
    """Derive a deterministic store key from query dependencies."""
    encoded = json.dumps(
        list(dependencies), sort_keys=True, separators=(",", ":"), default=str
    )
    return f"db_{encoded}"


def query_orchestrator(
    query: Producer[T],
    dependencies: Sequence[Any] = (),
    *,
    store: str | CacheStore,
    options: FetchOptions | None = None,
    metrics: Metrics | None = None,
    on_change: StateListener | None = None,
) -> FetchOrchestrator[T]:
    """
    Build an orchestrator for a database-style query keyed by its dependencies.

    Any ``cache_key`` in ``options`` is replaced by the derived key.
    """
    base = options or FetchOptions()
    keyed = base.model_copy(update={"cache_key": query_cache_key(dependencies)})
    return FetchOrchestrator(
        query,
        store=store,
        options=keyed,
        metrics=metrics,
        on_change=on_change,
    )
