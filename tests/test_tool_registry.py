"""Tests for tools/registry.py."""

from __future__ import annotations

import asyncio
from typing import Any, Mapping

import pytest

from openagent.core import CancellationToken, OperationCancelledError, ToolDescriptor
from openagent.tools import (
    ErrorCode,
    ToolArgumentsError,
    ToolExecutionError,
    ToolNotFoundError,
    ToolRegistrationError,
    ToolRegistry,
)
from tests.helpers import RecordingTool

_ECHO = ToolDescriptor(
    name="echo",
    description="Echo the text back.",
    input_schema={
        "type": "object",
        "properties": {"text": {"type": "string"}, "times": {"type": "integer", "minimum": 1}},
        "required": ["text"],
    },
)


def _echo(arguments: Mapping[str, Any], cancellation: CancellationToken | None) -> str:
    return arguments["text"] * arguments.get("times", 1)


class TestRegistration:
    def test_register_and_lookup(self) -> None:
        registry = ToolRegistry()
        registry.register(_ECHO, _echo)

        assert "echo" in registry
        assert registry.get("echo") is _ECHO
        assert registry.get("missing") is None
        assert registry.names() == ["echo"]
        assert len(registry) == 1
        assert list(registry) == [_ECHO]

    def test_descriptors_keep_registration_order(self) -> None:
        registry = ToolRegistry()
        registry.register(_ECHO, _echo)
        registry.register_tool(RecordingTool())

        assert [descriptor.name for descriptor in registry.descriptors()] == ["echo", "recorder"]
        assert [tool["function"]["name"] for tool in registry.to_openai_tools()] == ["echo", "recorder"]

    def test_duplicate_name_rejected_unless_replacing(self) -> None:
        registry = ToolRegistry()
        registry.register(_ECHO, _echo)

        with pytest.raises(ToolRegistrationError, match="already registered"):
            registry.register(_ECHO, _echo)

        replacement = ToolDescriptor(name="echo", description="Second version")
        registry.register(replacement, _echo, replace=True)
        assert registry.get("echo") is replacement

    def test_invalid_schema_rejected(self) -> None:
        registry = ToolRegistry()
        bad = ToolDescriptor(name="bad", description="Broken", input_schema={"type": "not-a-type"})

        with pytest.raises(ToolRegistrationError, match="invalid input schema"):
            registry.register(bad, _echo)
        assert "bad" not in registry

    def test_non_callable_executor_rejected(self) -> None:
        with pytest.raises(ToolRegistrationError):
            ToolRegistry().register(_ECHO, "nope")  # type: ignore[arg-type]

    def test_unregister(self) -> None:
        registry = ToolRegistry()
        registry.register(_ECHO, _echo)

        assert registry.unregister("echo")
        assert not registry.unregister("echo")
        assert len(registry) == 0


class TestExecution:
    @pytest.mark.asyncio
    async def test_executes_sync_executor(self) -> None:
        registry = ToolRegistry()
        registry.register(_ECHO, _echo)

        assert await registry.execute("echo", {"text": "ab", "times": 2}) == "abab"

    @pytest.mark.asyncio
    async def test_executes_async_executor(self) -> None:
        async def slow_echo(arguments: Mapping[str, Any], cancellation: CancellationToken | None) -> str:
            await asyncio.sleep(0)
            return arguments["text"].upper()

        registry = ToolRegistry()
        registry.register(_ECHO, slow_echo)

        assert await registry.execute("echo", {"text": "hi"}) == "HI"

    @pytest.mark.asyncio
    async def test_unknown_tool_raises_not_found(self) -> None:
        with pytest.raises(ToolNotFoundError) as excinfo:
            await ToolRegistry().execute("ghost", {})

        assert excinfo.value.tool_name == "ghost"
        assert excinfo.value.to_dict()["error"] == ErrorCode.TOOL_NOT_FOUND

    @pytest.mark.asyncio
    async def test_schema_violation_raises_arguments_error(self) -> None:
        calls: list[Any] = []
        registry = ToolRegistry()
        registry.register(_ECHO, lambda arguments, cancellation: calls.append(arguments))

        with pytest.raises(ToolArgumentsError) as excinfo:
            await registry.execute("echo", {"text": "x", "times": 0})

        assert excinfo.value.path == "times"
        assert "Invalid arguments for tool 'echo' at 'times'" in str(excinfo.value)
        assert calls == []

    @pytest.mark.asyncio
    async def test_missing_required_argument(self) -> None:
        registry = ToolRegistry()
        registry.register(_ECHO, _echo)

        with pytest.raises(ToolArgumentsError, match="'text' is a required property"):
            await registry.execute("echo", {})

    @pytest.mark.asyncio
    async def test_executor_exception_is_wrapped(self) -> None:
        registry = ToolRegistry()
        registry.register_tool(RecordingTool(error=ZeroDivisionError("division by zero")))

        with pytest.raises(ToolExecutionError) as excinfo:
            await registry.execute("recorder", {})

        error = excinfo.value
        assert error.tool_name == "recorder"
        assert error.message == "division by zero"
        assert error.details == {"exception_type": "ZeroDivisionError"}
        assert isinstance(error.__cause__, ZeroDivisionError)

    @pytest.mark.asyncio
    async def test_tool_errors_pass_through_unchanged(self) -> None:
        original = ToolExecutionError(message="custom failure", tool_name="recorder")
        registry = ToolRegistry()
        registry.register_tool(RecordingTool(error=original))

        with pytest.raises(ToolExecutionError) as excinfo:
            await registry.execute("recorder", {})

        assert excinfo.value is original

    @pytest.mark.asyncio
    async def test_cancelled_token_prevents_execution(self) -> None:
        tool = RecordingTool()
        registry = ToolRegistry()
        registry.register_tool(tool)
        token = CancellationToken()
        token.cancel()

        with pytest.raises(ToolExecutionError) as excinfo:
            await registry.execute("recorder", {}, token)

        assert excinfo.value.error_code == ErrorCode.OPERATION_CANCELLED
        assert tool.calls == []

    @pytest.mark.asyncio
    async def test_cancellation_inside_executor_is_reported(self) -> None:
        def cooperative(arguments: Mapping[str, Any], cancellation: CancellationToken | None) -> None:
            raise OperationCancelledError("stopped midway")

        registry = ToolRegistry()
        registry.register(_ECHO, cooperative)

        with pytest.raises(ToolExecutionError) as excinfo:
            await registry.execute("echo", {"text": "x"}, CancellationToken())

        assert excinfo.value.error_code == ErrorCode.OPERATION_CANCELLED
        assert excinfo.value.message == "stopped midway"

    @pytest.mark.asyncio
    async def test_executor_receives_token(self) -> None:
        received: list[Any] = []
        registry = ToolRegistry()
        registry.register(_ECHO, lambda arguments, cancellation: received.append(cancellation))
        token = CancellationToken()

        await registry.execute("echo", {"text": "x"}, token)

        assert received == [token]
