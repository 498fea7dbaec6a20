"""Shared test helpers and stub classes.

Import from here instead of duplicating these classes in individual test
files:

    from tests.helpers import ScriptedModelClient, tool_call
"""

from __future__ import annotations

from typing import Any, AsyncIterator, Mapping, Sequence

from openagent.core import (
    CancellationToken,
    Message,
    ModelResponse,
    ToolDescriptor,
    ToolInvocationRequest,
)


class ScriptedModelClient:
    """Model client that replays a fixed list of responses.

    Items may be :class:`ModelResponse` objects or exceptions to raise. With
    ``repeat_last`` the final item is replayed forever.
    """

    def __init__(self, responses: Sequence[Any] = (), *, repeat_last: bool = False) -> None:
        self._responses = list(responses)
        self._repeat_last = repeat_last
        self.calls: list[dict[str, Any]] = []

    async def send(
        self,
        messages: Sequence[Message],
        *,
        system_prompt: str | None = None,
        tools: Sequence[ToolDescriptor] = (),
        max_tokens: int | None = None,
        temperature: float | None = None,
        cancellation: CancellationToken | None = None,
    ) -> ModelResponse:
        self.calls.append(
            {
                "messages": tuple(messages),
                "system_prompt": system_prompt,
                "tools": tuple(tools),
                "max_tokens": max_tokens,
                "temperature": temperature,
                "cancellation": cancellation,
            }
        )
        index = len(self.calls) - 1
        if index < len(self._responses):
            item = self._responses[index]
        elif self._repeat_last and self._responses:
            item = self._responses[-1]
        else:
            raise AssertionError(f"No scripted response for call {index + 1}")
        if isinstance(item, BaseException):
            raise item
        return item


class RecordingTool:
    """Tool stub that records every call and returns a fixed value."""

    name = "recorder"
    description = "Records its arguments."
    input_schema: Mapping[str, Any] = {"type": "object", "properties": {"value": {"type": "string"}}}

    def __init__(self, result: Any = "recorded", *, error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.calls: list[dict[str, Any]] = []

    def execute(self, arguments: Mapping[str, Any], cancellation: CancellationToken | None = None) -> Any:
        self.calls.append(dict(arguments))
        if self.error is not None:
            raise self.error
        return self.result


def tool_call(name: str, arguments: Mapping[str, Any] | None = None, call_id: str = "call-1") -> ToolInvocationRequest:
    return ToolInvocationRequest(id=call_id, name=name, arguments=arguments or {})


def text_response(text: str) -> ModelResponse:
    return ModelResponse(text=text, stop_reason="stop")


def tool_response(*calls: ToolInvocationRequest, text: str | None = None) -> ModelResponse:
    return ModelResponse(text=text, tool_uses=calls, is_complete=False, stop_reason="tool_calls")


async def collect(events: AsyncIterator[Any]) -> list[Any]:
    return [event async for event in events]
