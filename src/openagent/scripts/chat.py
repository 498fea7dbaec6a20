"""Interactive console front end for the agent loop."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
import threading
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator, Sequence, TextIO

from ..core.cancellation import CancellationToken
from ..core.events import (
    AgentEvent,
    Completed,
    Error,
    ExecutingTool,
    MaxTurnsReached,
    ModelResponseEvent,
    ToolDenied,
    ToolResult,
    format_tool_result,
    is_terminal,
)
from ..core.history import HistoryStore
from ..core.loop import AgentLoop
from ..providers.openai_client import OpenAIModelClient
from ..services.event_log import EventLogger
from ..services.settings import Settings, SettingsStore
from ..tools import ToolRegistry, register_builtin_tools
from ..utils.logging import setup_logging

LOGGER = logging.getLogger(__name__)

_RESULT_PREVIEW_CHARS = 100
_WELCOME = (
    "OpenAgent CLI\n"
    "Type your message and press Enter to chat with the agent.\n"
    "Type 'exit' or 'quit' to leave, 'clear' to reset conversation, 'help' for commands."
)
_HELP = (
    "Available commands:\n"
    "  exit/quit - Exit the REPL\n"
    "  clear     - Clear conversation history\n"
    "  help      - Show this help message"
)
_MISSING_KEY_HELP = (
    "Error: API key not found.\n"
    "Set it via:\n"
    "  1. Environment variable: OPENAGENT_API_KEY (or OPENAI_API_KEY)\n"
    "  2. The api_key field of the settings file (stored encrypted once saved)"
)


def render_event(event: AgentEvent) -> str | None:
    """Return the console line for ``event``, or None for silent events."""

    if isinstance(event, ModelResponseEvent):
        return f"Agent: {event.text}"
    if isinstance(event, ExecutingTool):
        return f"-> Using tool: {event.name}"
    if isinstance(event, ToolResult):
        preview = format_tool_result(event.result)
        if len(preview) > _RESULT_PREVIEW_CHARS:
            preview = preview[: _RESULT_PREVIEW_CHARS - 3] + "..."
        return f"+ Tool {event.name} completed: {preview}"
    if isinstance(event, ToolDenied):
        return f"x Tool {event.name} denied: {event.reason}"
    if isinstance(event, MaxTurnsReached):
        return f"! Maximum turns reached ({event.turns})"
    if isinstance(event, Error):
        return f"x Error: {event.message}"
    return None


class ChatSession:
    """Conversation state shared across REPL prompts."""

    def __init__(
        self,
        agent: AgentLoop,
        *,
        event_logger: EventLogger | None = None,
        model: str | None = None,
        out: TextIO | None = None,
    ) -> None:
        self.agent = agent
        self.history = HistoryStore()
        self._event_logger = event_logger or EventLogger(enabled=False)
        self._model = model
        self._out = out or sys.stdout

    @classmethod
    def from_settings(cls, settings: Settings, *, out: TextIO | None = None) -> "ChatSession":
        registry = register_builtin_tools(ToolRegistry())
        client = OpenAIModelClient(settings.client_settings())
        agent = AgentLoop(client, registry, options=settings.agent_options(session_id=uuid.uuid4().hex))
        return cls(
            agent,
            event_logger=EventLogger(enabled=settings.debug_event_logging),
            model=settings.model,
            out=out,
        )

    async def ask(self, prompt: str, *, cancellation: CancellationToken | None = None) -> AgentEvent | None:
        """Run ``prompt`` against the shared history and render every event.

        Returns the terminal event, or None when the run was cancelled.
        """

        terminal: AgentEvent | None = None
        run_id = uuid.uuid4().hex
        with self._event_logger.start_run(run_id=run_id, prompt=prompt, model=self._model) as log_run:
            async for event in self.agent.run(prompt, history=self.history, cancellation=cancellation):
                log_run.log_event(event)
                line = render_event(event)
                if line is not None:
                    print(line, file=self._out)
                if is_terminal(event):
                    terminal = event
        return terminal

    def clear(self) -> None:
        self.history = HistoryStore()

    async def aclose(self) -> None:
        close = getattr(self.agent.client, "aclose", None)
        if close is not None:
            await close()


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    store = SettingsStore(args.settings) if args.settings else SettingsStore()
    settings = store.load(overrides=_cli_overrides(args))
    log_path = setup_logging(settings, debug=args.debug)
    LOGGER.debug("Logging to %s (model=%s, base_url=%s)", log_path, settings.model, settings.base_url)
    if not settings.api_key:
        print(_MISSING_KEY_HELP, file=sys.stderr)
        return 1

    session = ChatSession.from_settings(settings)
    with asyncio.Runner() as runner:
        try:
            if args.prompt:
                return _run_once(runner, session, args.prompt)
            return run_repl(runner, session)
        finally:
            runner.run(session.aclose())


def run_repl(
    runner: asyncio.Runner,
    session: ChatSession,
    *,
    input_fn: Callable[[str], str] = input,
    out: TextIO | None = None,
) -> int:
    """Read prompts until ``exit``/``quit`` or end of input."""

    out = out or sys.stdout
    print(_WELCOME, file=out)
    while True:
        try:
            text = input_fn("You: ")
        except (EOFError, KeyboardInterrupt):
            print("\nGoodbye!", file=out)
            return 0

        command = text.strip().lower()
        if not command:
            continue
        if command in ("exit", "quit"):
            print("Goodbye!", file=out)
            return 0
        if command == "clear":
            session.clear()
            print("Conversation cleared.", file=out)
            continue
        if command == "help":
            print(_HELP, file=out)
            continue

        token = CancellationToken()
        try:
            with _interrupt_cancels(token):
                runner.run(session.ask(text.strip(), cancellation=token))
        except KeyboardInterrupt:
            # Second Ctrl-C while a run was still unwinding.
            print("\nGoodbye!", file=out)
            return 0
        if token.cancelled:
            print("Cancelled.", file=out)
        print(file=out)


def _run_once(runner: asyncio.Runner, session: ChatSession, prompt: str) -> int:
    token = CancellationToken()
    try:
        with _interrupt_cancels(token):
            terminal = runner.run(session.ask(prompt, cancellation=token))
    except KeyboardInterrupt:
        return 130
    if token.cancelled:
        return 130
    return 0 if isinstance(terminal, Completed) else 1


@contextmanager
def _interrupt_cancels(token: CancellationToken) -> Iterator[CancellationToken]:
    """Route Ctrl-C to ``token`` while a run is active; a second press aborts."""

    if threading.current_thread() is not threading.main_thread():
        yield token
        return

    def _handler(signum: int, frame: Any) -> None:
        if token.cancelled:
            raise KeyboardInterrupt
        token.cancel("interrupted by user")

    previous = signal.signal(signal.SIGINT, _handler)
    try:
        yield token
    finally:
        signal.signal(signal.SIGINT, previous)


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Chat with a tool-using agent from the terminal.")
    parser.add_argument("--model", help="Model identifier to request.")
    parser.add_argument("--base-url", help="OpenAI-compatible API base URL.")
    parser.add_argument("--max-turns", type=int, help="Maximum model turns per prompt.")
    parser.add_argument("--temperature", type=float, help="Sampling temperature.")
    parser.add_argument("--system-prompt", help="Replace the default system prompt.")
    parser.add_argument("--prompt", help="Run a single prompt and exit instead of starting the REPL.")
    parser.add_argument("--settings", type=Path, help="Path to an alternate settings file.")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging and prompt payload logs.")
    return parser.parse_args(argv)


def _cli_overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {
        "model": args.model,
        "base_url": args.base_url,
        "max_turns": args.max_turns,
        "temperature": args.temperature,
        "system_prompt": args.system_prompt,
    }
    if args.debug:
        overrides["debug_logging"] = True
    return {key: value for key, value in overrides.items() if value is not None}


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
