"""Events emitted by the agent loop for front-end consumption.

The set of events is closed: :data:`AgentEventType` is the union of every
variant, so consumers can match exhaustively with ``isinstance`` checks and
``typing.assert_never``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Mapping, Union

__all__ = [
    "AgentEvent",
    "AgentEventType",
    "CallingModel",
    "Completed",
    "Error",
    "ErrorKind",
    "ExecutingTool",
    "GatheringContext",
    "MaxTurnsReached",
    "ModelResponseEvent",
    "ToolDenied",
    "ToolResult",
    "format_tool_result",
    "is_terminal",
]


def format_tool_result(result: Any) -> str:
    """Format a tool result for inclusion in a message or log line."""
    if result is None:
        return "null"
    if isinstance(result, str):
        return result
    if isinstance(result, bool):
        return "true" if result else "false"
    if isinstance(result, (int, float)):
        return str(result)
    try:
        return json.dumps(result, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return str(result)


@dataclass(slots=True, frozen=True)
class AgentEvent:
    """Base class for every event variant."""

    kind: ClassVar[str] = "event"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind}


@dataclass(slots=True, frozen=True)
class GatheringContext(AgentEvent):
    """The loop is collecting history and tools for a turn."""

    kind: ClassVar[str] = "gathering_context"
    turn: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "turn": self.turn}


@dataclass(slots=True, frozen=True)
class CallingModel(AgentEvent):
    """The loop is about to call the model."""

    kind: ClassVar[str] = "calling_model"
    turn: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "turn": self.turn}


@dataclass(slots=True, frozen=True)
class ModelResponseEvent(AgentEvent):
    """The model returned non-empty text."""

    kind: ClassVar[str] = "model_response"
    text: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "text": self.text}


@dataclass(slots=True, frozen=True)
class ExecutingTool(AgentEvent):
    """A tool is about to run."""

    kind: ClassVar[str] = "executing_tool"
    name: str = ""
    arguments: Mapping[str, Any] = field(default_factory=dict)
    call_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "name": self.name,
            "arguments": dict(self.arguments),
            "call_id": self.call_id,
        }


@dataclass(slots=True, frozen=True)
class ToolResult(AgentEvent):
    """A tool finished successfully."""

    kind: ClassVar[str] = "tool_result"
    name: str = ""
    result: Any = None
    call_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "name": self.name,
            "result": format_tool_result(self.result),
            "call_id": self.call_id,
        }


@dataclass(slots=True, frozen=True)
class ToolDenied(AgentEvent):
    """A pre-tool-use hook blocked a tool call."""

    kind: ClassVar[str] = "tool_denied"
    name: str = ""
    reason: str = ""
    call_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "name": self.name, "reason": self.reason, "call_id": self.call_id}


@dataclass(slots=True, frozen=True)
class Completed(AgentEvent):
    """The model finished the task. Terminal."""

    kind: ClassVar[str] = "completed"
    final_message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "final_message": self.final_message}


@dataclass(slots=True, frozen=True)
class MaxTurnsReached(AgentEvent):
    """The turn budget ran out before completion. Terminal."""

    kind: ClassVar[str] = "max_turns_reached"
    turns: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "turns": self.turns}


class ErrorKind(str, Enum):
    """Classification carried by :class:`Error` events."""

    MODEL_CALL = "model_call"
    PRE_MODEL_CALL_DENIED = "pre_model_call_denied"
    TOOL_NOT_FOUND = "tool_not_found"
    TOOL_EXECUTION = "tool_execution"
    HOOK = "hook"
    INTERNAL = "internal"

    @property
    def is_fatal(self) -> bool:
        return self not in (ErrorKind.TOOL_NOT_FOUND, ErrorKind.TOOL_EXECUTION)


@dataclass(slots=True, frozen=True)
class Error(AgentEvent):
    """Something failed.

    Tool failures (``tool_name`` set) are recoverable and the run goes on;
    every other kind is terminal.
    """

    kind: ClassVar[str] = "error"
    message: str = ""
    error_kind: ErrorKind = ErrorKind.MODEL_CALL
    tool_name: str | None = None
    exception: BaseException | None = field(default=None, compare=False)

    @property
    def is_fatal(self) -> bool:
        return self.error_kind.is_fatal

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "kind": self.kind,
            "error_kind": self.error_kind.value,
            "message": self.message,
        }
        if self.tool_name is not None:
            payload["tool_name"] = self.tool_name
        if self.exception is not None:
            payload["exception_type"] = type(self.exception).__name__
        return payload


AgentEventType = Union[
    GatheringContext,
    CallingModel,
    ModelResponseEvent,
    ExecutingTool,
    ToolResult,
    ToolDenied,
    Completed,
    MaxTurnsReached,
    Error,
]


def is_terminal(event: AgentEvent) -> bool:
    """Whether ``event`` ends the run's event sequence."""
    if isinstance(event, (Completed, MaxTurnsReached)):
        return True
    return isinstance(event, Error) and event.is_fatal
