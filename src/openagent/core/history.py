"""Append-only conversation history."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterable, Iterator

from .errors import HistoryInUseError
from .types import Message, as_messages

__all__ = ["HistoryStore"]

LOGGER = logging.getLogger(__name__)


class HistoryStore:
    """Ordered log of conversation messages.

    Entries are never edited or removed. A store can be leased by a single
    run at a time; callers wanting independent conversations use separate
    stores.
    """

    def __init__(self, messages: Iterable[Message] | None = None) -> None:
        self._messages: list[Message] = list(as_messages(list(messages or ())))
        self._owner: str | None = None

    def append(self, message: Message) -> None:
        if not isinstance(message, Message):
            raise TypeError(f"Expected Message, got {type(message).__name__}")
        self._messages.append(message)

    def snapshot(self) -> tuple[Message, ...]:
        """Return the current entries as an immutable tuple."""
        return tuple(self._messages)

    @property
    def last(self) -> Message | None:
        return self._messages[-1] if self._messages else None

    @property
    def owner(self) -> str | None:
        return self._owner

    @contextmanager
    def lease(self, owner: str) -> Iterator[HistoryStore]:
        """Claim exclusive use of the store for the duration of a run."""
        if self._owner is not None:
            raise HistoryInUseError(f"History is already in use by run {self._owner}")
        self._owner = owner
        LOGGER.debug("History leased by %s (%d message(s))", owner, len(self._messages))
        try:
            yield self
        finally:
            self._owner = None

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(tuple(self._messages))

    def __getitem__(self, index: int) -> Message:
        return self._messages[index]

    def __repr__(self) -> str:
        return f"HistoryStore(messages={len(self._messages)})"
