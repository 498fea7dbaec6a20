"""Tests for the append-only history store."""

from __future__ import annotations

import pytest

from openagent.core import HistoryInUseError, HistoryStore, Message


def test_append_preserves_order_and_content() -> None:
    store = HistoryStore()
    entries = [Message.user("one"), Message.assistant("two"), Message.user("three")]

    for entry in entries:
        store.append(entry)

    assert store.snapshot() == tuple(entries)
    assert list(store) == entries
    assert store[1] == Message.assistant("two")
    assert store.last == Message.user("three")
    assert len(store) == 3


def test_snapshot_is_not_affected_by_later_appends() -> None:
    store = HistoryStore([Message.user("first")])
    snapshot = store.snapshot()

    store.append(Message.assistant("second"))

    assert snapshot == (Message.user("first"),)
    assert len(store) == 2


def test_seed_messages_are_copied() -> None:
    seed = [Message.user("hi")]
    store = HistoryStore(seed)

    store.append(Message.assistant("hello"))

    assert seed == [Message.user("hi")]


def test_append_rejects_non_messages() -> None:
    store = HistoryStore()

    with pytest.raises(TypeError):
        store.append({"role": "user", "content": "raw"})  # type: ignore[arg-type]


def test_empty_store_has_no_last_message() -> None:
    assert HistoryStore().last is None


def test_lease_is_exclusive_and_released() -> None:
    store = HistoryStore()

    with store.lease("run-1"):
        assert store.owner == "run-1"
        with pytest.raises(HistoryInUseError):
            with store.lease("run-2"):
                pass

    assert store.owner is None
    with store.lease("run-3"):
        assert store.owner == "run-3"


def test_lease_released_after_error() -> None:
    store = HistoryStore()

    with pytest.raises(RuntimeError):
        with store.lease("run-1"):
            raise RuntimeError("boom")

    assert store.owner is None
