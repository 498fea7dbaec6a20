"""Agent loop, hooks, history, and the event model."""

from .cancellation import CancellationToken, await_cancellable
from .errors import (
    AgentError,
    HistoryInUseError,
    HookError,
    ModelCallError,
    OperationCancelledError,
    PreModelCallDenied,
)
from .events import (
    AgentEvent,
    AgentEventType,
    CallingModel,
    Completed,
    Error,
    ErrorKind,
    ExecutingTool,
    GatheringContext,
    MaxTurnsReached,
    ModelResponseEvent,
    ToolDenied,
    ToolResult,
    is_terminal,
)
from .history import HistoryStore
from .hooks import HookCallback, HookContext, HookRegistry, HookType, HookVerdict
from .types import (
    DEFAULT_SYSTEM_PROMPT,
    AgentOptions,
    Message,
    ModelResponse,
    ToolDescriptor,
    ToolInvocationRequest,
    TurnState,
)
from .loop import AgentLoop, ModelClient, ToolOutcome

__all__ = [
    "DEFAULT_SYSTEM_PROMPT",
    "AgentError",
    "AgentEvent",
    "AgentEventType",
    "AgentLoop",
    "AgentOptions",
    "CallingModel",
    "CancellationToken",
    "Completed",
    "Error",
    "ErrorKind",
    "ExecutingTool",
    "GatheringContext",
    "HistoryInUseError",
    "HistoryStore",
    "HookCallback",
    "HookContext",
    "HookError",
    "HookRegistry",
    "HookType",
    "HookVerdict",
    "MaxTurnsReached",
    "Message",
    "ModelCallError",
    "ModelClient",
    "ModelResponse",
    "ModelResponseEvent",
    "OperationCancelledError",
    "PreModelCallDenied",
    "ToolDenied",
    "ToolDescriptor",
    "ToolInvocationRequest",
    "ToolOutcome",
    "ToolResult",
    "TurnState",
    "await_cancellable",
    "is_terminal",
]
