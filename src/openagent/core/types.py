"""Core type definitions shared by the agent loop and its collaborators.

Messages, tool descriptors, and model responses are frozen so they can be
handed to hooks and front ends without risk of mutation. ``TurnState`` is the
only mutable piece and is owned by the agent loop.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Literal, Mapping, Sequence

__all__ = [
    "DEFAULT_SYSTEM_PROMPT",
    "AgentOptions",
    "Message",
    "MessageRole",
    "ModelResponse",
    "ToolDescriptor",
    "ToolInvocationRequest",
    "TurnState",
    "as_messages",
]

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful AI assistant. You have access to various tools to help complete tasks. "
    "Use tools when appropriate to gather information or perform actions. "
    "Be concise and helpful in your responses."
)

MessageRole = Literal["user", "assistant"]
_ROLES: frozenset[str] = frozenset({"user", "assistant"})


def _empty_schema() -> Mapping[str, Any]:
    return {"type": "object", "properties": {}}


# -----------------------------------------------------------------------------
# Conversation
# -----------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class Message:
    """Immutable conversation entry.

    Attributes:
        role: Either ``"user"`` or ``"assistant"``.
        content: Text content of the message.
    """

    role: MessageRole
    content: str

    def __post_init__(self) -> None:
        if self.role not in _ROLES:
            raise ValueError(f"Unsupported message role: {self.role!r}")
        if not isinstance(self.content, str):
            raise TypeError("Message content must be a string")

    @classmethod
    def user(cls, content: str) -> Message:
        """Create a user message."""
        return cls(role="user", content=content)

    @classmethod
    def assistant(cls, content: str) -> Message:
        """Create an assistant message."""
        return cls(role="assistant", content=content)

    def to_chat_param(self) -> dict[str, str]:
        """Convert to the chat completion message format."""
        return {"role": self.role, "content": self.content}


# -----------------------------------------------------------------------------
# Tools
# -----------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class ToolDescriptor:
    """Metadata describing a tool the model may invoke.

    Attributes:
        name: Identifier, unique within a registry.
        description: Human-readable description shown to the model.
        input_schema: JSON Schema describing the accepted arguments.
    """

    name: str
    description: str
    input_schema: Mapping[str, Any] = field(default_factory=_empty_schema)

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("Tool name is required")

    def as_openai_tool(self) -> dict[str, Any]:
        """Return the function-calling representation of this tool."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": dict(self.input_schema),
            },
        }


@dataclass(slots=True, frozen=True)
class ToolInvocationRequest:
    """A single tool call requested by the model."""

    id: str
    name: str
    arguments: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Read-only view so hooks cannot rewrite the request in flight.
        object.__setattr__(self, "arguments", MappingProxyType(dict(self.arguments)))


@dataclass(slots=True, frozen=True)
class ModelResponse:
    """Normalized response returned by a model client.

    Attributes:
        text: Assistant text, if any.
        tool_uses: Tool calls in the order the model returned them.
        is_complete: Whether the model reported a natural end of turn.
        stop_reason: Provider stop/finish reason.
    """

    text: str | None = None
    tool_uses: tuple[ToolInvocationRequest, ...] = ()
    is_complete: bool = True
    stop_reason: str | None = None

    def __post_init__(self) -> None:
        uses = tuple(self.tool_uses)
        object.__setattr__(self, "tool_uses", uses)
        seen: set[str] = set()
        for use in uses:
            if use.id in seen:
                raise ValueError(f"Duplicate tool invocation id in model response: {use.id!r}")
            seen.add(use.id)

    @property
    def has_tool_uses(self) -> bool:
        return bool(self.tool_uses)


# -----------------------------------------------------------------------------
# Loop state and options
# -----------------------------------------------------------------------------


@dataclass(slots=True)
class TurnState:
    """Mutable progress marker owned by the agent loop."""

    turn_number: int = 0
    done: bool = False

    def advance(self) -> int:
        self.turn_number += 1
        return self.turn_number


@dataclass(slots=True, frozen=True)
class AgentOptions:
    """Per-run configuration for the agent loop.

    Attributes:
        max_turns: Upper bound on loop iterations (0 allowed).
        temperature: Sampling temperature passed to the model client.
        max_tokens: Completion token limit passed to the model client.
        system_prompt: System prompt; ``DEFAULT_SYSTEM_PROMPT`` when unset.
        session_id: Optional identifier surfaced to hooks.
    """

    max_turns: int = 20
    temperature: float | None = 0.7
    max_tokens: int | None = 4096
    system_prompt: str | None = None
    session_id: str | None = None

    def __post_init__(self) -> None:
        if self.max_turns < 0:
            raise ValueError("max_turns must be >= 0")

    @property
    def resolved_system_prompt(self) -> str:
        return self.system_prompt or DEFAULT_SYSTEM_PROMPT


def as_messages(entries: Sequence[Message]) -> tuple[Message, ...]:
    """Validate an iterable of messages and return it as a tuple."""
    result: list[Message] = []
    for entry in entries:
        if not isinstance(entry, Message):
            raise TypeError(f"Expected Message, got {type(entry).__name__}")
        result.append(entry)
    return tuple(result)
