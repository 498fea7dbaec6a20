"""Policy hooks evaluated at fixed interception points of the agent loop.

Hooks are registered on a :class:`HookRegistry` instance that is handed to
the agent loop at construction time. For a given :class:`HookType` the
callbacks run in registration order.

Enforcing hook types (``pre_*``) stop at the first denial and the loop acts
on it. Observation hook types (``post_*``) always run every callback; a
denial returned by one of them is reported back but the loop only logs it.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Union

from .errors import HookError

__all__ = [
    "HookCallback",
    "HookContext",
    "HookRegistry",
    "HookType",
    "HookVerdict",
]

LOGGER = logging.getLogger(__name__)


class HookType(str, Enum):
    """Interception points exposed by the agent loop."""

    PRE_MODEL_CALL = "pre_model_call"
    POST_MODEL_CALL = "post_model_call"
    PRE_TOOL_USE = "pre_tool_use"
    POST_TOOL_USE = "post_tool_use"
    PRE_AGENT_STOP = "pre_agent_stop"
    POST_AGENT_STOP = "post_agent_stop"

    @property
    def is_enforcing(self) -> bool:
        """Whether a denial at this point blocks the in-flight operation."""
        return self in _ENFORCING


_ENFORCING = frozenset({HookType.PRE_MODEL_CALL, HookType.PRE_TOOL_USE, HookType.PRE_AGENT_STOP})


@dataclass(slots=True, frozen=True)
class HookVerdict:
    """Outcome of a hook evaluation."""

    allowed: bool
    reason: str | None = None

    def __post_init__(self) -> None:
        if not self.allowed and not (self.reason and self.reason.strip()):
            raise ValueError("A denial requires a reason")

    @classmethod
    def allow(cls) -> HookVerdict:
        return _ALLOW

    @classmethod
    def deny(cls, reason: str) -> HookVerdict:
        return cls(allowed=False, reason=reason)


_ALLOW = HookVerdict(allowed=True)


@dataclass(slots=True, frozen=True)
class HookContext:
    """Execution context passed to every hook callback."""

    turn_number: int
    session_id: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)


HookResult = Union[HookVerdict, None]
HookCallback = Callable[[Any, HookContext], Union[HookResult, Awaitable[HookResult]]]


class HookRegistry:
    """Ordered hook storage keyed by :class:`HookType`.

    Example:
        >>> hooks = HookRegistry()
        >>> @hooks.on(HookType.PRE_TOOL_USE)
        ... def no_shell(request, context):
        ...     if request.name == "shell":
        ...         return HookVerdict.deny("shell is disabled")
    """

    def __init__(self) -> None:
        self._hooks: dict[HookType, list[HookCallback]] = {hook_type: [] for hook_type in HookType}

    def register(self, hook_type: HookType | str, callback: HookCallback) -> None:
        if not callable(callback):
            raise TypeError("Hook callback must be callable")
        key = HookType(hook_type)
        self._hooks[key].append(callback)
        LOGGER.debug("Registered %s hook %s", key.value, _callback_name(callback))

    def on(self, hook_type: HookType | str) -> Callable[[HookCallback], HookCallback]:
        """Decorator form of :meth:`register`."""

        def decorator(callback: HookCallback) -> HookCallback:
            self.register(hook_type, callback)
            return callback

        return decorator

    def unregister(self, hook_type: HookType | str, callback: HookCallback) -> bool:
        callbacks = self._hooks[HookType(hook_type)]
        if callback in callbacks:
            callbacks.remove(callback)
            return True
        return False

    def callbacks(self, hook_type: HookType | str) -> tuple[HookCallback, ...]:
        return tuple(self._hooks[HookType(hook_type)])

    def clear(self) -> None:
        for callbacks in self._hooks.values():
            callbacks.clear()

    def __len__(self) -> int:
        return sum(len(callbacks) for callbacks in self._hooks.values())

    async def evaluate(self, hook_type: HookType | str, data: Any, context: HookContext) -> HookVerdict:
        """Run the callbacks registered for ``hook_type`` in order.

        Returns the first denial, or an allow verdict when none deny.
        Enforcing types stop at the first denial; observation types keep
        going so every observer sees the data.

        Raises:
            HookError: If a callback raises or returns an unexpected value.
        """
        key = HookType(hook_type)
        callbacks = tuple(self._hooks[key])
        if not callbacks:
            return HookVerdict.allow()

        first_denial: HookVerdict | None = None
        for callback in callbacks:
            verdict = await self._invoke(key, callback, data, context)
            if verdict.allowed:
                continue
            LOGGER.debug(
                "%s hook %s denied: %s",
                key.value,
                _callback_name(callback),
                verdict.reason,
            )
            if key.is_enforcing:
                return verdict
            if first_denial is None:
                first_denial = verdict

        return first_denial or HookVerdict.allow()

    async def _invoke(
        self,
        hook_type: HookType,
        callback: HookCallback,
        data: Any,
        context: HookContext,
    ) -> HookVerdict:
        try:
            result = callback(data, context)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            raise HookError(hook_type.value, f"{_callback_name(callback)}: {exc}") from exc

        if result is None:
            return HookVerdict.allow()
        if not isinstance(result, HookVerdict):
            raise HookError(
                hook_type.value,
                f"{_callback_name(callback)} returned {type(result).__name__}, expected HookVerdict",
            )
        return result


def _callback_name(callback: Any) -> str:
    return getattr(callback, "__qualname__", None) or getattr(callback, "__name__", None) or repr(callback)
