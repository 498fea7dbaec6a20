"""Name-keyed registry of tools available to the agent loop.

The registry owns tool descriptors and their executors. Arguments supplied
by the model are validated against the descriptor's JSON Schema before the
executor runs, so executors receive structurally sound input.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Iterator, Mapping

from jsonschema import Draft7Validator
from jsonschema.exceptions import SchemaError

from ..core.cancellation import CancellationToken
from ..core.errors import OperationCancelledError
from ..core.types import ToolDescriptor
from .base import Tool, ToolExecutor, describe
from .errors import (
    ErrorCode,
    ToolArgumentsError,
    ToolError,
    ToolExecutionError,
    ToolNotFoundError,
    ToolRegistrationError,
)

__all__ = ["ToolRegistration", "ToolRegistry"]

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ToolRegistration:
    """A registered tool with its executor and compiled validator.

    Attributes:
        descriptor: Tool metadata advertised to the model.
        executor: Callable receiving ``(arguments, cancellation)``.
        validator: Draft 7 validator for the descriptor's input schema.
    """

    descriptor: ToolDescriptor
    executor: ToolExecutor
    validator: Draft7Validator

    @property
    def name(self) -> str:
        return self.descriptor.name


class ToolRegistry:
    """Registry for agent tools.

    Example:
        registry = ToolRegistry()
        registry.register_tool(CalculatorTool())
        descriptor = registry.get("calculator")
        result = await registry.execute("calculator", {"operation": "add", "a": 1, "b": 2})
    """

    def __init__(self) -> None:
        self._tools: dict[str, ToolRegistration] = {}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, descriptor: ToolDescriptor, executor: ToolExecutor, *, replace: bool = False) -> None:
        """Register ``executor`` under ``descriptor.name``.

        Raises:
            ToolRegistrationError: If the name is taken (and ``replace`` is
                false), the executor is not callable, or the input schema is
                not a valid JSON Schema.
        """
        name = descriptor.name
        if name in self._tools and not replace:
            raise ToolRegistrationError(name, "a tool with this name is already registered")
        if not callable(executor):
            raise ToolRegistrationError(name, "executor is not callable")
        try:
            Draft7Validator.check_schema(dict(descriptor.input_schema))
        except SchemaError as exc:
            raise ToolRegistrationError(name, f"invalid input schema: {exc.message}") from exc

        self._tools[name] = ToolRegistration(
            descriptor=descriptor,
            executor=executor,
            validator=Draft7Validator(dict(descriptor.input_schema)),
        )
        LOGGER.debug("Registered tool: %s", name)

    def register_tool(self, tool: Tool, *, replace: bool = False) -> None:
        """Register an object implementing the :class:`Tool` protocol."""
        self.register(describe(tool), tool.execute, replace=replace)

    def unregister(self, name: str) -> bool:
        """Remove a tool. Returns False when ``name`` was not registered."""
        if self._tools.pop(name, None) is None:
            return False
        LOGGER.debug("Unregistered tool: %s", name)
        return True

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, name: str) -> ToolDescriptor | None:
        reg = self._tools.get(name)
        return reg.descriptor if reg else None

    def descriptors(self) -> tuple[ToolDescriptor, ...]:
        """Return all descriptors in registration order."""
        return tuple(reg.descriptor for reg in self._tools.values())

    def names(self) -> list[str]:
        return list(self._tools)

    def to_openai_tools(self) -> list[dict[str, Any]]:
        """Convert all tools to the function-calling format."""
        return [reg.descriptor.as_openai_tool() for reg in self._tools.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[ToolDescriptor]:
        return iter(self.descriptors())

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute(
        self,
        name: str,
        arguments: Mapping[str, Any],
        cancellation: CancellationToken | None = None,
    ) -> Any:
        """Validate ``arguments`` and run the tool registered as ``name``.

        Raises:
            ToolNotFoundError: If no tool is registered under ``name``.
            ToolArgumentsError: If the arguments violate the input schema.
            ToolExecutionError: If the executor raised or was cancelled.
        """
        reg = self._tools.get(name)
        if reg is None:
            raise ToolNotFoundError.for_name(name)

        payload = dict(arguments)
        self._validate(reg, payload)

        if cancellation is not None and cancellation.cancelled:
            raise ToolExecutionError(
                error_code=ErrorCode.OPERATION_CANCELLED,
                message=f"Tool '{name}' was cancelled before it started",
                tool_name=name,
            )

        LOGGER.debug("Executing tool %s", name)
        try:
            result = reg.executor(payload, cancellation)
            if inspect.isawaitable(result):
                result = await result
        except ToolError:
            raise
        except OperationCancelledError as exc:
            raise ToolExecutionError(
                error_code=ErrorCode.OPERATION_CANCELLED,
                message=str(exc),
                tool_name=name,
            ) from exc
        except Exception as exc:
            raise ToolExecutionError.wrap(name, exc) from exc
        return result

    def _validate(self, reg: ToolRegistration, payload: Mapping[str, Any]) -> None:
        errors = sorted(reg.validator.iter_errors(payload), key=lambda err: [str(part) for part in err.absolute_path])
        if not errors:
            return
        first = errors[0]
        path = "/".join(str(part) for part in first.absolute_path)
        location = f" at '{path}'" if path else ""
        raise ToolArgumentsError(
            message=f"Invalid arguments for tool '{reg.name}'{location}: {first.message}",
            details={"errors": [err.message for err in errors]},
            path=path or None,
        )
