"""Cooperative cancellation shared between a front end and a running loop."""

from __future__ import annotations

import asyncio
import threading
from typing import Awaitable, TypeVar

from .errors import OperationCancelledError

__all__ = ["CancellationToken", "await_cancellable"]

T = TypeVar("T")


class CancellationToken:
    """Thread-safe cancellation flag checked at every suspension point.

    The token may be cancelled from any thread (for example a UI thread
    handling Ctrl-C) while the agent loop runs on an asyncio loop.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelledError(self._reason or "cancelled")

    def __repr__(self) -> str:
        state = f"cancelled={self._reason!r}" if self.cancelled else "active"
        return f"CancellationToken({state})"


async def await_cancellable(
    awaitable: Awaitable[T],
    cancellation: CancellationToken | None,
    *,
    poll_interval: float = 0.1,
) -> T:
    """Await ``awaitable``, abandoning it as soon as ``cancellation`` fires.

    Raises:
        OperationCancelledError: If the token is cancelled before the
            awaitable finishes. The underlying task is cancelled.
    """
    if cancellation is None:
        return await awaitable
    if cancellation.cancelled:
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise OperationCancelledError(cancellation.reason or "cancelled")
    task = asyncio.ensure_future(awaitable)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=poll_interval)
            if done:
                return task.result()
            if cancellation.cancelled:
                task.cancel()
                raise OperationCancelledError(cancellation.reason or "cancelled")
    finally:
        if not task.done():
            task.cancel()
