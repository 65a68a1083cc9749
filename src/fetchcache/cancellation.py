"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Cooperative cancellation tokens and the tagged producer result type.
"""

from __future__ import annotations

import asyncio
import contextvars
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from .errors import OperationAborted

T = TypeVar("T")

Producer = Callable[[], Awaitable[T]]

_CURRENT_TOKEN: contextvars.ContextVar["CancellationToken | None"] = (
    contextvars.ContextVar("fetchcache_cancellation_token", default=None)
)


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Producer completed and its value is usable."""

    value: T


@dataclass(frozen=True, slots=True)
class Aborted:
    """Producer was cancelled or its result was superseded."""

    reason: str = "cancelled"


@dataclass(frozen=True, slots=True)
class Failed:
    """Producer raised a domain error."""

    error: BaseException


FetchResult = Union[Ok[T], Aborted, Failed]


class CancellationToken:
    """
    Cooperative cancellation signal for one producer invocation.

    Producers may poll ``cancelled`` / ``raise_if_cancelled()`` or await
    ``wait()``. Cancelling the token also cancels the producer task bound to
    it, so producers that simply await I/O abort promptly.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None
        self._task: asyncio.Future[object] | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str = "cancelled") -> None:
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationAborted(self._reason or "cancelled")

    def _bind(self, task: asyncio.Future[object]) -> None:
        self._task = task
        if self._event.is_set():
            task.cancel()


def current_cancellation_token() -> CancellationToken | None:
    """Return the token of the producer invocation running in this context."""
    return _CURRENT_TOKEN.get()


async def run_producer(producer: Producer[T], token: CancellationToken) -> FetchResult[T]:
    """
    Run ``producer`` as a task bound to ``token`` and classify its outcome.

    Cancellation caused by ``token`` and ``OperationAborted`` map to
    ``Aborted``; cancellation of the caller itself propagates.
    """
    context = contextvars.copy_context()
    context.run(_CURRENT_TOKEN.set, token)
    task = asyncio.get_running_loop().create_task(
        _invoke(producer), context=context
    )
    token._bind(task)  # noqa: SLF001
    try:
        value = await task
    except asyncio.CancelledError:
        if token.cancelled and task.cancelled():
            return Aborted(token.reason or "cancelled")
        raise
    except OperationAborted as exc:
        return Aborted(str(exc) or "aborted")
    except Exception as exc:  # noqa: BLE001
        return Failed(exc)
    return Ok(value)


async def _invoke(producer: Producer[T]) -> T:
    return await producer()
