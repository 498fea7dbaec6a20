"""Basic arithmetic tool."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Mapping

from ..core.cancellation import CancellationToken
from .errors import ToolExecutionError

__all__ = ["CalculatorTool", "format_number"]


def format_number(value: float) -> str:
    """Render integral floats without a fractional part (``42.0`` -> ``42``)."""
    if isinstance(value, float) and value.is_integer() and math.isfinite(value):
        return str(int(value))
    return str(value)


def _divide(a: float, b: float) -> float:
    if b == 0:
        raise ToolExecutionError(message="Cannot divide by zero", tool_name=CalculatorTool.name)
    return a / b


@dataclass(slots=True)
class CalculatorTool:
    """Perform add, subtract, multiply, or divide on two numbers."""

    name: ClassVar[str] = "calculator"
    description: ClassVar[str] = (
        "Perform basic arithmetic operations. Supports add, subtract, multiply, and divide."
    )
    operations: Mapping[str, Callable[[float, float], float]] = field(
        default_factory=lambda: {
            "add": lambda a, b: a + b,
            "subtract": lambda a, b: a - b,
            "multiply": lambda a, b: a * b,
            "divide": _divide,
        }
    )

    @property
    def input_schema(self) -> Mapping[str, Any]:
        return {
            "type": "object",
            "properties": {
                "operation": {
                    "type": "string",
                    "enum": sorted(self.operations),
                    "description": "Arithmetic operation to perform.",
                },
                "a": {"type": "number", "description": "First operand."},
                "b": {"type": "number", "description": "Second operand."},
            },
            "required": ["operation", "a", "b"],
            "additionalProperties": False,
        }

    def execute(self, arguments: Mapping[str, Any], cancellation: CancellationToken | None = None) -> str:
        operation = str(arguments["operation"]).lower()
        handler = self.operations.get(operation)
        if handler is None:
            raise ToolExecutionError(message=f"Unknown operation: {operation}", tool_name=self.name)
        a = float(arguments["a"])
        b = float(arguments["b"])
        result = handler(a, b)
        return f"{format_number(a)} {operation} {format_number(b)} = {format_number(result)}"
