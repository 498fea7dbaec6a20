"""Tool registry, error types, and built-in tools."""

from .base import Tool, ToolExecutor, describe
from .calculator import CalculatorTool
from .clock import GetTimeTool
from .errors import (
    ErrorCode,
    ToolArgumentsError,
    ToolError,
    ToolExecutionError,
    ToolNotFoundError,
    ToolRegistrationError,
)
from .registry import ToolRegistration, ToolRegistry


def register_builtin_tools(registry: ToolRegistry) -> ToolRegistry:
    """Register the calculator and clock tools on ``registry``."""
    registry.register_tool(CalculatorTool())
    registry.register_tool(GetTimeTool())
    return registry


__all__ = [
    "CalculatorTool",
    "ErrorCode",
    "GetTimeTool",
    "Tool",
    "ToolArgumentsError",
    "ToolError",
    "ToolExecutionError",
    "ToolExecutor",
    "ToolNotFoundError",
    "ToolRegistration",
    "ToolRegistrationError",
    "ToolRegistry",
    "describe",
    "register_builtin_tools",
]
