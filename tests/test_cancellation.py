"""Tests for the cancellation token helpers."""

from __future__ import annotations

import asyncio
import threading

import pytest

from openagent.core import CancellationToken, OperationCancelledError, await_cancellable


def test_token_records_first_reason() -> None:
    token = CancellationToken()
    assert not token.cancelled
    token.raise_if_cancelled()

    token.cancel("first")
    token.cancel("second")

    assert token.cancelled
    assert token.reason == "first"
    with pytest.raises(OperationCancelledError, match="first"):
        token.raise_if_cancelled()


def test_token_can_be_cancelled_from_another_thread() -> None:
    token = CancellationToken()
    worker = threading.Thread(target=token.cancel, args=("from thread",))

    worker.start()
    worker.join()

    assert token.cancelled
    assert "from thread" in repr(token)


@pytest.mark.asyncio
async def test_await_cancellable_returns_result() -> None:
    async def compute() -> int:
        await asyncio.sleep(0)
        return 42

    assert await await_cancellable(compute(), CancellationToken()) == 42
    assert await await_cancellable(compute(), None) == 42


@pytest.mark.asyncio
async def test_await_cancellable_rejects_already_cancelled_token() -> None:
    token = CancellationToken()
    token.cancel("stop")
    started: list[bool] = []

    async def never_started() -> None:
        started.append(True)

    with pytest.raises(OperationCancelledError):
        await await_cancellable(never_started(), token)

    assert started == []


@pytest.mark.asyncio
async def test_await_cancellable_abandons_slow_work() -> None:
    token = CancellationToken()
    finished: list[bool] = []

    async def slow() -> None:
        await asyncio.sleep(10)
        finished.append(True)

    asyncio.get_running_loop().call_later(0.05, token.cancel, "too slow")

    with pytest.raises(OperationCancelledError, match="too slow"):
        await await_cancellable(slow(), token, poll_interval=0.01)

    assert finished == []
