"""Standardized error types for tools.

Tool failures are recovered by the agent loop: the error message is written
into the conversation so the model can react on its next turn. The
``to_dict`` form is what gets recorded in event logs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Sequence


# -----------------------------------------------------------------------------
# Error Code Constants
# -----------------------------------------------------------------------------


class ErrorCode:
    """Constants for error codes used in tool failures."""

    TOOL_NOT_FOUND = "tool_not_found"
    INVALID_ARGUMENTS = "invalid_arguments"
    EXECUTION_FAILED = "execution_failed"
    OPERATION_CANCELLED = "operation_cancelled"


# -----------------------------------------------------------------------------
# Base Error Class
# -----------------------------------------------------------------------------


@dataclass
class ToolError(Exception):
    """Base exception class for all tool errors.

    Attributes:
        error_code: Machine-readable error identifier.
        message: Human-readable error description.
        details: Additional structured error information.
        suggestion: Actionable guidance for recovery.
    """

    error_code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = ""

    severity: ClassVar[str] = "error"

    def __post_init__(self) -> None:
        Exception.__init__(self, self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary for structured logs."""
        result: dict[str, Any] = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = dict(self.details)
        if self.suggestion:
            result["suggestion"] = self.suggestion
        return result

    def __str__(self) -> str:
        return self.message


# -----------------------------------------------------------------------------
# Concrete Errors
# -----------------------------------------------------------------------------


@dataclass
class ToolNotFoundError(ToolError):
    """Raised when the model requests a tool that is not registered."""

    error_code: str = field(default=ErrorCode.TOOL_NOT_FOUND)
    message: str = field(default="Tool not found")
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = field(default="Use one of the tools listed in the request")

    tool_name: str | None = field(default=None)

    @classmethod
    def for_name(cls, name: str) -> ToolNotFoundError:
        return cls(message=f"Tool '{name}' not found", tool_name=name)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.tool_name is not None:
            result["tool_name"] = self.tool_name
        return result


@dataclass
class ToolArgumentsError(ToolError):
    """Raised when tool arguments do not satisfy the tool's input schema."""

    error_code: str = field(default=ErrorCode.INVALID_ARGUMENTS)
    message: str = field(default="Invalid tool arguments")
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = field(default="Check the tool's input schema and retry")

    path: str | None = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.path:
            result["path"] = self.path
        return result


@dataclass
class ToolExecutionError(ToolError):
    """Raised when a tool fails while running."""

    error_code: str = field(default=ErrorCode.EXECUTION_FAILED)
    message: str = field(default="Tool execution failed")
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = field(default="")

    tool_name: str | None = field(default=None)

    @classmethod
    def wrap(cls, name: str, exc: BaseException) -> ToolExecutionError:
        error = cls(
            message=str(exc) or exc.__class__.__name__,
            details={"exception_type": exc.__class__.__name__},
            tool_name=name,
        )
        error.__cause__ = exc
        return error

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.tool_name is not None:
            result["tool_name"] = self.tool_name
        return result


# -----------------------------------------------------------------------------
# Registration Errors
# -----------------------------------------------------------------------------


class ToolRegistrationError(RuntimeError):
    """Error raised when a tool cannot be registered."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"Failed to register tool '{name}': {reason}")
        self.name = name
        self.reason = reason


ERROR_TYPES: Sequence[type[ToolError]] = (
    ToolNotFoundError,
    ToolArgumentsError,
    ToolExecutionError,
)

__all__ = [
    "ErrorCode",
    "ToolError",
    "ToolNotFoundError",
    "ToolArgumentsError",
    "ToolExecutionError",
    "ToolRegistrationError",
    "ERROR_TYPES",
]
