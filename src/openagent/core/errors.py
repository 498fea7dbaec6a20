"""Exceptions raised by the agent loop and its collaborators."""

from __future__ import annotations

__all__ = [
    "AgentError",
    "HistoryInUseError",
    "HookError",
    "ModelCallError",
    "OperationCancelledError",
    "PreModelCallDenied",
]


class AgentError(RuntimeError):
    """Base class for agent loop failures."""


class ModelCallError(AgentError):
    """Raised when the model client fails to produce a response.

    ``transient`` marks network, timeout, and rate-limit failures that a
    caller may choose to retry on a later run.
    """

    def __init__(self, message: str, *, transient: bool = False) -> None:
        super().__init__(message)
        self.transient = transient


class PreModelCallDenied(AgentError):
    """Raised when a pre-model-call hook blocks a turn."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class HookError(AgentError):
    """Raised when a hook callback itself fails."""

    def __init__(self, hook_type: str, message: str) -> None:
        super().__init__(f"{hook_type} hook failed: {message}")
        self.hook_type = hook_type


class OperationCancelledError(AgentError):
    """Raised by :meth:`CancellationToken.raise_if_cancelled`."""


class HistoryInUseError(AgentError):
    """Raised when a history store is already leased by another run."""
