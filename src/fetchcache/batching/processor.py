"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Batch processor: timed, bounded-size draining of a FIFO work queue.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import deque
from collections.abc import Awaitable, Callable, Sequence
from typing import Generic, TypeVar, Union

from ..errors import BatchHandlerError
from ..metrics import Metrics, NoOpMetrics
from .contracts import BatchOptions

logger = logging.getLogger("fetchcache.batching.processor")

T = TypeVar("T")
R = TypeVar("R")

BatchHandler = Callable[[list[T]], Union[Awaitable[Sequence[R]], Sequence[R]]]

# Called with the failed chunk and the handler's exception.
FailureCallback = Callable[[list[T], BaseException], Union[Awaitable[None], None]]


class BatchProcessor(Generic[T, R]):
    """
    Accumulates work items and hands them to ``handler`` in bounded chunks.

    The first enqueue into an idle processor arms a drain task. Each cycle
    waits ``delay_s``, takes up to ``batch_size`` items from the head of the
    queue and awaits the handler with them; the handler's results are
    appended to ``results``. Cycles repeat until the queue is empty, so at
    most one chunk is ever being processed per instance.
    """

    def __init__(
        self,
        handler: BatchHandler[T, R],
        *,
        options: BatchOptions | None = None,
        metrics: Metrics | None = None,
        on_failure: FailureCallback[T] | None = None,
    ) -> None:
        self._handler = handler
        self._options = options or BatchOptions()
        self._metrics: Metrics = metrics or NoOpMetrics()
        self._on_failure = on_failure
        self._pending: deque[T] = deque()
        self._results: list[R] = []
        self._processing = False
        self._drain_task: asyncio.Task[None] | None = None
        self._error: BatchHandlerError | None = None
        self._consecutive_failures = 0
        self._closed = False

    @property
    def options(self) -> BatchOptions:
        return self._options

    @property
    def processing(self) -> bool:
        """Whether a chunk is currently inside the handler."""
        return self._processing

    @property
    def queue_size(self) -> int:
        return len(self._pending)

    @property
    def results(self) -> list[R]:
        """Accumulated handler results in enqueue order (copy)."""
        return list(self._results)

    @property
    def error(self) -> BatchHandlerError | None:
        """Failure recorded under the ``propagate`` policy, if any."""
        return self._error

    @property
    def closed(self) -> bool:
        return self._closed

    def add_to_queue(self, items: T | list[T] | tuple[T, ...]) -> None:
        """
        Append one item or a list/tuple of items to the tail of the queue.

        Never drains synchronously; must be called from a running event loop.
        """
        if self._closed:
            raise RuntimeError("BatchProcessor is closed")
        if isinstance(items, (list, tuple)):
            self._pending.extend(items)
        else:
            self._pending.append(items)
        self._arm()

    enqueue = add_to_queue

    def clear_queue(self) -> None:
        """
        Drop pending items, accumulated results and any recorded failure.

        A chunk already inside the handler finishes normally.
        """
        self._pending.clear()
        self._results.clear()
        self._error = None
        self._consecutive_failures = 0

    async def join(self) -> None:
        """
        Wait until the queue has been drained.

        Raises ``BatchHandlerError`` if draining stopped under the
        ``propagate`` policy.
        """
        while True:
            task = self._drain_task
            if task is None or task.done():
                break
            await asyncio.wait({task})
        if self._error is not None:
            raise self._error

    def close(self) -> None:
        """Stop draining. Pending items stay queued and are never handled."""
        self._closed = True
        task = self._drain_task
        self._drain_task = None
        if task is not None and not task.done():
            task.cancel()

    async def aclose(self) -> None:
        task = self._drain_task
        self.close()
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    def _arm(self) -> None:
        if self._drain_task is not None or self._error is not None:
            return
        if not self._pending:
            return
        self._drain_task = asyncio.get_running_loop().create_task(self._drain_loop())

    async def _drain_loop(self) -> None:
        current = asyncio.current_task()
        try:
            while self._pending and not self._closed and self._error is None:
                await asyncio.sleep(self._options.delay_s)
                if not self._pending:
                    break
                size = min(self._options.batch_size, len(self._pending))
                chunk = [self._pending.popleft() for _ in range(size)]
                await self._process(chunk)
        finally:
            if self._drain_task is current:
                self._drain_task = None

    async def _process(self, chunk: list[T]) -> None:
        self._processing = True
        try:
            produced = self._handler(list(chunk))
            if inspect.isawaitable(produced):
                produced = await produced
        except Exception as exc:  # noqa: BLE001
            failure: Exception | None = exc
        else:
            failure = None
        finally:
            self._processing = False

        if failure is not None:
            await self._handle_failure(chunk, failure)
            return

        self._consecutive_failures = 0
        self._results.extend(produced or ())
        self._metrics.incr("batch_drained_total")
        logger.debug(
            "Drained batch of %d item(s) (%d still queued)",
            len(chunk),
            len(self._pending),
        )

    async def _handle_failure(self, chunk: list[T], exc: Exception) -> None:
        policy = self._options.failure_policy
        self._metrics.incr("batch_failed_total", tags={"policy": policy})

        if policy == "requeue" and self._consecutive_failures < self._options.max_requeues:
            self._consecutive_failures += 1
            self._pending.extendleft(reversed(chunk))
            logger.warning(
                "Batch of %d item(s) failed, requeued (attempt %d/%d): %s",
                len(chunk),
                self._consecutive_failures,
                self._options.max_requeues,
                exc,
            )
        elif policy == "propagate":
            error = BatchHandlerError(f"Batch handler failed: {exc}", items=chunk)
            error.__cause__ = exc
            self._error = error
            logger.error(
                "Batch of %d item(s) failed; draining stopped (%d still queued)",
                len(chunk),
                len(self._pending),
                exc_info=exc,
            )
        else:
            self._consecutive_failures = 0
            logger.error(
                "Batch of %d item(s) failed and was dropped",
                len(chunk),
                exc_info=exc,
            )

        if self._on_failure is None:
            return
        try:
            outcome = self._on_failure(list(chunk), exc)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception:  # noqa: BLE001
            logger.exception("Batch on_failure callback failed")
