"""Cooperative cancellation for a single chat turn."""
from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Optional, TypeVar

from copilot_core.errors import TurnCancelled

__all__ = ["CancellationToken"]

T = TypeVar("T")


class CancellationToken:
    """
    Explicit cancellation handle passed into a turn.

    The turn checks it at every suspension point (the handler call and each
    stream read). ``cancel()`` may be called from any coroutine on the same
    loop; it is idempotent.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._waiter: Optional[asyncio.Future[None]] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if self._waiter is not None and not self._waiter.done():
            self._waiter.set_result(None)

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise TurnCancelled()

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """
        Await ``awaitable`` unless the token fires first.

        If cancellation wins, the pending awaitable is cancelled and
        ``TurnCancelled`` is raised. A result that arrives after the token
        fired is discarded the same way. The pending awaitable has finished
        unwinding by the time either exception leaves ``guard``.
        """
        if self._cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise TurnCancelled()
        loop = asyncio.get_running_loop()
        if self._waiter is None or self._waiter.done():
            self._waiter = loop.create_future()
        waiter = self._waiter
        task: asyncio.Future[Any] = asyncio.ensure_future(awaitable)
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            await _discard(task)
            raise
        if self._cancelled:
            await _discard(task)
            raise TurnCancelled()
        return task.result()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(cancelled={self._cancelled})"


async def _discard(task: asyncio.Future[Any]) -> None:
    task.cancel()
    await asyncio.wait({task})
    if not task.cancelled():
        task.exception()  # late result is dropped
