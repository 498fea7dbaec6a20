"""Model client built around OpenAI-compatible chat completion endpoints."""

from __future__ import annotations

import inspect
import json
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Sequence

import httpx
from openai import (
    APIConnectionError,
    APIError,
    AsyncOpenAI,
    InternalServerError,
    RateLimitError,
)
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..core.cancellation import CancellationToken, await_cancellable
from ..core.errors import ModelCallError, OperationCancelledError
from ..core.types import Message, ModelResponse, ToolDescriptor, ToolInvocationRequest

__all__ = ["ClientSettings", "OpenAIModelClient", "TRANSIENT_ERRORS"]

LOGGER = logging.getLogger(__name__)

TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    APIConnectionError,
    RateLimitError,
    InternalServerError,
    httpx.TimeoutException,
)


@dataclass(slots=True)
class ClientSettings:
    """Subset of settings required to configure the model client."""

    base_url: str
    api_key: str
    model: str
    organization: str | None = None
    request_timeout: float | None = 90.0
    max_retries: int = 3
    retry_min_seconds: float = 0.5
    retry_max_seconds: float = 6.0
    token_limit_param: str = "max_tokens"
    default_headers: Mapping[str, str] | None = None
    metadata: Mapping[str, str] | None = None
    debug_logging: bool = False


class OpenAIModelClient:
    """Async model client with retry semantics for transient failures."""

    def __init__(self, settings: ClientSettings, *, client: AsyncOpenAI | None = None) -> None:
        self._settings = settings
        self._client = client or self._build_client(settings)

    @property
    def settings(self) -> ClientSettings:
        return self._settings

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
        """Send the conversation and normalize the completion.

        Raises:
            ModelCallError: If the request fails permanently, retries are
                exhausted, or the completion cannot be parsed.
            OperationCancelledError: If ``cancellation`` fires mid-request.
        """
        payload = self._build_chat_payload(
            messages=messages,
            system_prompt=system_prompt,
            tools=tools,
            max_tokens=max_tokens,
            temperature=temperature,
        )
        LOGGER.debug(
            "Sending chat completion via %s with %s message(s) and %s tool(s)",
            self._settings.model,
            len(payload["messages"]),
            len(payload.get("tools", ())),
        )
        if self._settings.debug_logging:
            self._log_prompt_payload(payload)

        try:
            async for attempt in self._retrying():
                with attempt:
                    if cancellation is not None:
                        cancellation.raise_if_cancelled()
                    completion = await await_cancellable(
                        self._client.chat.completions.create(**payload),
                        cancellation,
                    )
        except OperationCancelledError:
            raise
        except TRANSIENT_ERRORS as exc:
            raise ModelCallError(f"Transient model error: {exc}", transient=True) from exc
        except APIError as exc:
            raise ModelCallError(f"Model request failed: {exc}") from exc

        return self._parse_completion(completion)

    def _build_client(self, settings: ClientSettings) -> AsyncOpenAI:
        headers = dict(settings.default_headers) if settings.default_headers else None
        return AsyncOpenAI(
            api_key=settings.api_key,
            base_url=settings.base_url,
            organization=settings.organization,
            timeout=settings.request_timeout,
            default_headers=headers,
            max_retries=0,
        )

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(max(1, self._settings.max_retries)),
            wait=wait_exponential(
                multiplier=self._settings.retry_min_seconds,
                max=self._settings.retry_max_seconds,
            ),
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
        )

    def _build_chat_payload(
        self,
        *,
        messages: Sequence[Message],
        system_prompt: str | None,
        tools: Sequence[ToolDescriptor],
        max_tokens: int | None,
        temperature: float | None,
    ) -> Dict[str, Any]:
        chat_messages: List[Dict[str, Any]] = []
        if system_prompt:
            chat_messages.append({"role": "system", "content": system_prompt})
        chat_messages.extend(message.to_chat_param() for message in messages)
        if not chat_messages:
            raise ValueError("At least one message is required to start a chat")

        payload: Dict[str, Any] = {
            "model": self._settings.model,
            "messages": chat_messages,
        }
        if tools:
            payload["tools"] = [descriptor.as_openai_tool() for descriptor in tools]
        if temperature is not None:
            payload["temperature"] = temperature
        if max_tokens is not None:
            payload[self._settings.token_limit_param] = max_tokens
        if self._settings.metadata:
            payload["metadata"] = dict(self._settings.metadata)
        return payload

    def _parse_completion(self, completion: Any) -> ModelResponse:
        choices = getattr(completion, "choices", None) or []
        if not choices:
            raise ModelCallError("Model returned no choices")
        choice = choices[0]
        message = getattr(choice, "message", None)
        finish_reason = getattr(choice, "finish_reason", None)
        text = getattr(message, "content", None) or None

        tool_uses: list[ToolInvocationRequest] = []
        for index, call in enumerate(getattr(message, "tool_calls", None) or []):
            function = getattr(call, "function", None)
            name = getattr(function, "name", None)
            if not name:
                raise ModelCallError(f"Tool call {index} is missing a function name")
            call_id = getattr(call, "id", None) or f"call_{index}_{uuid.uuid4().hex[:8]}"
            tool_uses.append(
                ToolInvocationRequest(
                    id=call_id,
                    name=name,
                    arguments=_decode_arguments(name, getattr(function, "arguments", None)),
                )
            )

        try:
            return ModelResponse(
                text=text,
                tool_uses=tuple(tool_uses),
                is_complete=finish_reason == "stop",
                stop_reason=finish_reason,
            )
        except ValueError as exc:
            raise ModelCallError(str(exc)) from exc

    def _log_prompt_payload(self, payload: Mapping[str, Any]) -> None:
        try:
            serialized = json.dumps(payload, ensure_ascii=False, indent=2)
        except (TypeError, ValueError):
            LOGGER.debug("Prompt payload (unserializable): %s", payload)
        else:
            LOGGER.debug("Prompt payload:\n%s", serialized)

    async def aclose(self) -> None:
        """Close the underlying OpenAI client to release network resources."""

        close = getattr(self._client, "close", None)
        if close is None:
            return
        result = close()
        if inspect.isawaitable(result):
            await result


def _decode_arguments(name: str, raw: Any) -> dict[str, Any]:
    if raw is None or raw == "":
        return {}
    if isinstance(raw, Mapping):
        return dict(raw)
    try:
        decoded = json.loads(raw)
    except (TypeError, json.JSONDecodeError) as exc:
        raise ModelCallError(f"Tool call {name} has malformed JSON arguments: {exc}") from exc
    if not isinstance(decoded, dict):
        raise ModelCallError(f"Tool call {name} arguments must be a JSON object")
    return decoded
