"""Agent loop: gather context, call the model, run tools, repeat.

:class:`AgentLoop` drives a single conversational task. Each call to
:meth:`AgentLoop.run` returns an async generator of
:class:`~openagent.core.events.AgentEvent` objects; work only happens as the
consumer pulls events, so abandoning the iteration (or closing the generator)
stops all further model and tool calls.

Per turn the loop:

1. emits ``GatheringContext`` and evaluates ``pre_model_call`` hooks,
2. emits ``CallingModel`` and sends the history to the model client,
3. evaluates ``post_model_call`` hooks and emits the response text,
4. runs requested tools one after another, guarded by ``pre_tool_use``
   hooks, and records one assistant message summarizing the results,
5. or, when no tools were requested, checks ``pre_agent_stop`` hooks and
   completes.

The run ends with exactly one terminal event: ``Completed``,
``MaxTurnsReached``, or a fatal ``Error``. Cancellation ends it early with
no terminal event.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import AsyncGenerator, AsyncIterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable, Protocol, Sequence, runtime_checkable

from ..tools.errors import ToolError, ToolNotFoundError
from .cancellation import CancellationToken
from .errors import HookError, ModelCallError, OperationCancelledError, PreModelCallDenied
from .events import (
    AgentEvent,
    CallingModel,
    Completed,
    Error,
    ErrorKind,
    ExecutingTool,
    GatheringContext,
    MaxTurnsReached,
    ModelResponseEvent,
    ToolDenied,
    ToolResult,
    format_tool_result,
)
from .history import HistoryStore
from .hooks import HookContext, HookRegistry, HookType, HookVerdict
from .types import AgentOptions, Message, ModelResponse, ToolDescriptor, ToolInvocationRequest, TurnState

if TYPE_CHECKING:
    from ..tools.registry import ToolRegistry

__all__ = [
    "AgentLoop",
    "ModelClient",
    "ToolOutcome",
]

LOGGER = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Protocols
# -----------------------------------------------------------------------------


@runtime_checkable
class ModelClient(Protocol):
    """Protocol for clients that turn a conversation into a model response.

    Implementations may raise any exception; the loop treats every failure
    as fatal for the current run.
    """

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
        ...


# -----------------------------------------------------------------------------
# Tool outcomes
# -----------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class ToolOutcome:
    """Result of executing a single tool request.

    Attributes:
        call_id: The ID of the tool request.
        name: Name of the tool that was called.
        success: Whether execution succeeded.
        value: The raw tool result when successful.
        error: The failure when unsuccessful.
        duration_ms: Execution time in milliseconds.
    """

    call_id: str
    name: str
    success: bool
    value: Any = None
    error: BaseException | None = None
    duration_ms: float = 0.0

    @classmethod
    def from_success(cls, request: ToolInvocationRequest, value: Any, duration_ms: float = 0.0) -> ToolOutcome:
        return cls(call_id=request.id, name=request.name, success=True, value=value, duration_ms=duration_ms)

    @classmethod
    def from_error(cls, request: ToolInvocationRequest, error: BaseException, duration_ms: float = 0.0) -> ToolOutcome:
        return cls(call_id=request.id, name=request.name, success=False, error=error, duration_ms=duration_ms)

    @property
    def error_message(self) -> str:
        if self.error is None:
            return ""
        return str(self.error) or type(self.error).__name__

    @property
    def error_kind(self) -> ErrorKind:
        if isinstance(self.error, ToolNotFoundError):
            return ErrorKind.TOOL_NOT_FOUND
        return ErrorKind.TOOL_EXECUTION

    @property
    def note(self) -> str:
        """Text recorded in history so the model can react next turn."""
        if self.success:
            return f"[Tool {self.name} result: {format_tool_result(self.value)}]"
        return f"[Tool {self.name} error: {self.error_message}]"


# -----------------------------------------------------------------------------
# Agent Loop
# -----------------------------------------------------------------------------


class AgentLoop:
    """Turn-based controller for a single conversational task.

    Example:
        >>> loop = AgentLoop(client, registry, hooks=hooks)
        >>> async for event in loop.run("What's 15 + 27?"):
        ...     render(event)
    """

    def __init__(
        self,
        client: ModelClient,
        tools: ToolRegistry,
        *,
        options: AgentOptions | None = None,
        hooks: HookRegistry | None = None,
    ) -> None:
        if client is None:
            raise ValueError("client is required")
        if tools is None:
            raise ValueError("tools is required")
        self._client = client
        self._tools = tools
        self._options = options or AgentOptions()
        self._hooks = hooks if hooks is not None else HookRegistry()
        self._active: AsyncGenerator[AgentEvent, None] | None = None

    @property
    def client(self) -> ModelClient:
        return self._client

    @property
    def tools(self) -> ToolRegistry:
        return self._tools

    @property
    def options(self) -> AgentOptions:
        return self._options

    @property
    def hooks(self) -> HookRegistry:
        return self._hooks

    @property
    def running(self) -> bool:
        """True while a stream from this loop is executing a step."""
        return self._active is not None and self._active.ag_running

    def run(
        self,
        user_prompt: str,
        *,
        history: HistoryStore | Iterable[Message] | None = None,
        options: AgentOptions | None = None,
        cancellation: CancellationToken | None = None,
    ) -> AsyncIterator[AgentEvent]:
        """Run the loop for ``user_prompt`` and return its event stream.

        Nothing happens until the stream is iterated. A new call closes the
        previous stream from this loop if it is suspended between events, so
        leaving an ``async for`` with ``break`` never blocks the next run.

        A ``pre_agent_stop`` denial counts as a turn. If that turn was the
        last one allowed, the run ends with ``MaxTurnsReached`` even though
        the model had produced a final answer.

        Args:
            user_prompt: The user's message, appended to history first.
            history: Store to continue (used in place), messages to seed a
                fresh store, or None to start empty.
            options: Overrides the loop's default options for this run.
            cancellation: Token checked at every suspension point.

        Raises:
            RuntimeError: If the previous stream is executing a step in
                another task.
            TypeError: On first iteration, if ``user_prompt`` is not a string.
            HistoryInUseError: On first iteration, if ``history`` is leased
                by another run.
        """
        previous = self._active
        if previous is not None and previous.ag_running:
            raise RuntimeError("AgentLoop is already running; create another loop for concurrent runs")
        stream = self._stream(user_prompt, previous, history, options or self._options, cancellation)
        self._active = stream
        return stream

    async def _stream(
        self,
        user_prompt: str,
        previous: AsyncGenerator[AgentEvent, None] | None,
        history: HistoryStore | Iterable[Message] | None,
        opts: AgentOptions,
        cancellation: CancellationToken | None,
    ) -> AsyncGenerator[AgentEvent, None]:
        if not isinstance(user_prompt, str):
            raise TypeError("user_prompt must be a string")

        store = history if isinstance(history, HistoryStore) else HistoryStore(history)
        run_id = uuid.uuid4().hex
        state = TurnState()

        if previous is not None:
            # Abandoned with ``break``: release its history lease first.
            await previous.aclose()

        with store.lease(run_id):
            store.append(Message.user(user_prompt))
            LOGGER.debug("Starting run %s with max_turns=%d", run_id, opts.max_turns)
            failed = False

            while not state.done and state.turn_number < opts.max_turns:
                if _is_cancelled(cancellation, run_id):
                    return
                turn = state.advance()
                context = HookContext(
                    turn_number=turn,
                    session_id=opts.session_id,
                    metadata={"run_id": run_id, "conversation_length": len(store)},
                )

                try:
                    yield GatheringContext(turn=turn)
                    snapshot = store.snapshot()
                    descriptors = self._tools.descriptors()

                    verdict = await self._hooks.evaluate(HookType.PRE_MODEL_CALL, snapshot, context)
                    if not verdict.allowed:
                        raise PreModelCallDenied(verdict.reason or "denied")
                    _check(cancellation)

                    yield CallingModel(turn=turn)
                    response = await self._call_model(snapshot, descriptors, opts, cancellation)
                    _check(cancellation)

                    await self._observe(HookType.POST_MODEL_CALL, response, context)
                    if response.text:
                        yield ModelResponseEvent(text=response.text)

                    if response.tool_uses:
                        notes: list[str] = []
                        for request in response.tool_uses:
                            _check(cancellation)
                            verdict = await self._hooks.evaluate(HookType.PRE_TOOL_USE, request, context)
                            if not verdict.allowed:
                                reason = verdict.reason or "Denied by hook"
                                LOGGER.info("Run %s: tool %s denied: %s", run_id, request.name, reason)
                                yield ToolDenied(name=request.name, reason=reason, call_id=request.id)
                                notes.append(f"[Tool {request.name} was denied: {reason}]")
                                continue

                            yield ExecutingTool(name=request.name, arguments=request.arguments, call_id=request.id)
                            outcome = await self._execute_tool(request, cancellation)
                            _check(cancellation)
                            if outcome.success:
                                yield ToolResult(name=outcome.name, result=outcome.value, call_id=outcome.call_id)
                                await self._observe(HookType.POST_TOOL_USE, outcome.value, context)
                            else:
                                yield Error(
                                    message=f"Tool {outcome.name} failed: {outcome.error_message}",
                                    error_kind=outcome.error_kind,
                                    tool_name=outcome.name,
                                    exception=outcome.error,
                                )
                            notes.append(outcome.note)

                        store.append(Message.assistant(_join_content(response.text, notes)))
                        continue

                    final_text = response.text or ""
                    verdict = await self._hooks.evaluate(HookType.PRE_AGENT_STOP, final_text, context)
                    if not verdict.allowed:
                        LOGGER.info("Run %s: stop denied on turn %d: %s", run_id, turn, verdict.reason)
                        store.append(
                            Message.assistant(_join_content(final_text, [f"[Stop denied: {verdict.reason}]"]))
                        )
                        continue

                    store.append(Message.assistant(final_text))
                    state.done = True
                    yield Completed(final_message=final_text)

                except OperationCancelledError:
                    _is_cancelled(cancellation, run_id)
                    return
                except PreModelCallDenied as exc:
                    LOGGER.info("Run %s: model call denied on turn %d: %s", run_id, turn, exc.reason)
                    yield Error(
                        message=f"Model call denied: {exc.reason}",
                        error_kind=ErrorKind.PRE_MODEL_CALL_DENIED,
                        exception=exc,
                    )
                    failed = True
                    break
                except HookError as exc:
                    LOGGER.warning("Run %s: hook failure on turn %d: %s", run_id, turn, exc)
                    yield Error(message=str(exc), error_kind=ErrorKind.HOOK, exception=exc)
                    failed = True
                    break
                except ModelCallError as exc:
                    LOGGER.warning("Run %s: model call failed on turn %d: %s", run_id, turn, exc)
                    yield Error(
                        message=f"Error in turn {turn}: {exc}",
                        error_kind=ErrorKind.MODEL_CALL,
                        exception=exc,
                    )
                    failed = True
                    break
                except Exception as exc:
                    LOGGER.error("Run %s failed on turn %d: %s", run_id, turn, exc, exc_info=True)
                    yield Error(
                        message=f"Error in turn {turn}: {exc}",
                        error_kind=ErrorKind.INTERNAL,
                        exception=exc,
                    )
                    failed = True
                    break

            if not failed and not state.done and state.turn_number >= opts.max_turns:
                LOGGER.warning("Run %s reached max turns (%d)", run_id, opts.max_turns)
                yield MaxTurnsReached(turns=state.turn_number)

            await self._finish(store, state, opts, run_id)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _call_model(
        self,
        snapshot: Sequence[Message],
        descriptors: Sequence[ToolDescriptor],
        opts: AgentOptions,
        cancellation: CancellationToken | None,
    ) -> ModelResponse:
        try:
            response = await self._client.send(
                snapshot,
                system_prompt=opts.resolved_system_prompt,
                tools=descriptors,
                max_tokens=opts.max_tokens,
                temperature=opts.temperature,
                cancellation=cancellation,
            )
        except (ModelCallError, OperationCancelledError):
            raise
        except Exception as exc:
            raise ModelCallError(str(exc) or type(exc).__name__) from exc
        if not isinstance(response, ModelResponse):
            raise ModelCallError(f"Model client returned {type(response).__name__}, expected ModelResponse")
        return response

    async def _execute_tool(
        self,
        request: ToolInvocationRequest,
        cancellation: CancellationToken | None,
    ) -> ToolOutcome:
        started = time.perf_counter()
        try:
            value = await self._tools.execute(request.name, request.arguments, cancellation)
        except ToolError as exc:
            duration_ms = (time.perf_counter() - started) * 1000
            LOGGER.debug("Tool %s failed after %.1fms: %s", request.name, duration_ms, exc)
            return ToolOutcome.from_error(request, exc, duration_ms)
        except Exception as exc:
            duration_ms = (time.perf_counter() - started) * 1000
            LOGGER.debug("Tool %s raised after %.1fms", request.name, duration_ms, exc_info=True)
            return ToolOutcome.from_error(request, exc, duration_ms)
        duration_ms = (time.perf_counter() - started) * 1000
        LOGGER.debug("Tool %s completed in %.1fms", request.name, duration_ms)
        return ToolOutcome.from_success(request, value, duration_ms)

    async def _observe(self, hook_type: HookType, data: Any, context: HookContext) -> HookVerdict:
        verdict = await self._hooks.evaluate(hook_type, data, context)
        if not verdict.allowed:
            # Observation points do not block.
            LOGGER.info("Ignoring %s denial: %s", hook_type.value, verdict.reason)
        return verdict

    async def _finish(self, store: HistoryStore, state: TurnState, opts: AgentOptions, run_id: str) -> None:
        context = HookContext(
            turn_number=state.turn_number,
            session_id=opts.session_id,
            metadata={"run_id": run_id, "conversation_length": len(store), "done": state.done},
        )
        try:
            await self._observe(HookType.POST_AGENT_STOP, store.snapshot(), context)
        except HookError:
            LOGGER.exception("Run %s: post_agent_stop hook failed", run_id)
        LOGGER.debug("Run %s finished after %d turn(s), done=%s", run_id, state.turn_number, state.done)


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------


def _check(cancellation: CancellationToken | None) -> None:
    if cancellation is not None:
        cancellation.raise_if_cancelled()


def _is_cancelled(cancellation: CancellationToken | None, run_id: str) -> bool:
    if cancellation is None or not cancellation.cancelled:
        return False
    LOGGER.info("Run %s cancelled: %s", run_id, cancellation.reason)
    return True


def _join_content(text: str | None, notes: Sequence[str]) -> str:
    parts = [text] if text else []
    parts.extend(notes)
    return "\n".join(parts)
