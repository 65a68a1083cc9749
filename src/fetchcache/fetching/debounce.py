"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Trailing-edge debounce timer owned by one orchestrator.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger("fetchcache.fetching.debounce")


class Debouncer:
    """
    Coalesce bursts of ``trigger()`` calls into one trailing callback.

    Every trigger re-arms the timer, so the callback runs once, ``delay_s``
    after the last trigger of a burst. Once the timer fires it is detached:
    a trigger arriving while the callback runs arms a fresh timer instead of
    cancelling the running callback.
    """

    def __init__(self, callback: Callable[[], Awaitable[object]], delay_s: float) -> None:
        if delay_s < 0:
            raise ValueError("delay_s must be >= 0")
        self._callback = callback
        self._delay_s = delay_s
        self._timer: asyncio.Task[None] | None = None
        self._running: set[asyncio.Task[None]] = set()
        self._closed = False

    @property
    def pending(self) -> bool:
        """Whether a timer is armed and has not fired yet."""
        return self._timer is not None and not self._timer.done()

    @property
    def closed(self) -> bool:
        return self._closed

    def trigger(self) -> None:
        """(Re)arm the timer. Must be called from a running event loop."""
        if self._closed:
            return
        self.cancel()
        self._timer = asyncio.get_running_loop().create_task(self._wait_then_fire())

    def cancel(self) -> None:
        """Drop the pending timer, if any. Running callbacks are untouched."""
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    def close(self) -> None:
        self._closed = True
        self.cancel()

    async def aclose(self) -> None:
        """Close, then cancel and await callbacks that already started."""
        self.close()
        running = list(self._running)
        for task in running:
            task.cancel()
        if running:
            await asyncio.gather(*running, return_exceptions=True)

    async def _wait_then_fire(self) -> None:
        await asyncio.sleep(self._delay_s)
        current = asyncio.current_task()
        if current is None:
            return
        if self._timer is current:
            self._timer = None
        self._running.add(current)
        try:
            await self._callback()
        except Exception:  # noqa: BLE001
            logger.exception("Debounced callback failed")
        finally:
            self._running.discard(current)
