"""Tool contracts consumed by :class:`~openagent.tools.registry.ToolRegistry`."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Mapping, Protocol, Union, runtime_checkable

from ..core.cancellation import CancellationToken
from ..core.types import ToolDescriptor

__all__ = ["Tool", "ToolExecutor", "describe"]

ToolExecutor = Callable[[Mapping[str, Any], Union[CancellationToken, None]], Union[Any, Awaitable[Any]]]


@runtime_checkable
class Tool(Protocol):
    """A named capability the model can invoke.

    ``execute`` may be a coroutine function or a plain function.
    """

    name: str
    description: str
    input_schema: Mapping[str, Any]

    def execute(self, arguments: Mapping[str, Any], cancellation: CancellationToken | None = None) -> Any:
        ...


def describe(tool: Tool) -> ToolDescriptor:
    """Build the descriptor for a tool object."""
    return ToolDescriptor(
        name=tool.name,
        description=tool.description,
        input_schema=tool.input_schema,
    )
