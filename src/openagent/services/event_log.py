"""Debug event logging utilities for agent runs."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Mapping

from ..core.events import AgentEventType, Completed, Error, MaxTurnsReached
from ..utils import logging as logging_utils

LOGGER = logging.getLogger(__name__)


def _default_event_dir() -> Path:
    log_path = logging_utils.get_log_path()
    if log_path is not None:
        return log_path.parent / "events"
    return Path.home() / ".openagent" / "logs" / "events"


@dataclass(slots=True)
class _NullEventLogRun:
    """No-op implementation used when event logging is disabled."""

    path: Path | None = None

    def __enter__(self) -> "_NullEventLogRun":  # noqa: D401
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:  # noqa: D401
        return False

    def log_event(self, *_: Any, **__: Any) -> None:
        return

    def log_completion(self, *_: Any, **__: Any) -> None:
        return

    def log_failure(self, *_: Any, **__: Any) -> None:
        return


class EventLogRun:
    """Context manager that writes structured JSONL entries for one agent run.

    The file holds a ``start`` record, one ``event`` record per emitted agent
    event, and a single closing record whose ``status`` is ``success``,
    ``max_turns``, ``failure``, or ``cancelled``.
    """

    def __init__(self, path: Path, *, context: Mapping[str, Any]) -> None:
        self.path = path
        self._file = path.open("w", encoding="utf-8")
        self._finalized = False
        self._event_count = 0
        self._write_entry("start", context)

    @property
    def finalized(self) -> bool:
        return self._finalized

    def __enter__(self) -> "EventLogRun":  # noqa: D401
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:  # noqa: D401
        if exc is not None and not self._finalized:
            self.log_failure(message=str(exc) or exc_type.__name__)
        elif not self._finalized:
            self.log_completion(status="cancelled")
        return False

    def close(self) -> None:
        if not self._file.closed:
            self._file.close()

    def log_event(self, event: AgentEventType) -> None:
        """Record ``event`` and close the run when it is terminal."""

        if self._finalized:
            return
        self._event_count += 1
        self._write_entry("event", {"index": self._event_count, **event.to_dict()})
        if isinstance(event, Completed):
            self.log_completion(status="success", final_message=event.final_message)
        elif isinstance(event, MaxTurnsReached):
            self.log_completion(status="max_turns", turns=event.turns)
        elif isinstance(event, Error) and event.is_fatal:
            self.log_failure(message=event.message, details={"error_kind": event.error_kind.value})

    def log_completion(self, *, status: str = "success", **details: Any) -> None:
        if self._finalized:
            return
        payload: dict[str, Any] = {"status": status, "event_count": self._event_count}
        payload.update(details)
        self._write_entry("completion", payload)
        self._finalized = True
        self.close()

    def log_failure(self, *, message: str, details: Mapping[str, Any] | None = None) -> None:
        if self._finalized:
            return
        payload: dict[str, Any] = {
            "status": "failure",
            "message": message,
            "event_count": self._event_count,
        }
        if details:
            payload["details"] = self._safe_json(dict(details))
        self._write_entry("failure", payload)
        self._finalized = True
        self.close()

    def _write_entry(self, event: str, payload: Mapping[str, Any] | None = None) -> None:
        entry: dict[str, Any] = {
            "event": event,
            "timestamp": time.time(),
        }
        if payload:
            for key, value in payload.items():
                entry[key] = self._safe_json(value)
        json.dump(entry, self._file, ensure_ascii=False)
        self._file.write("\n")
        self._file.flush()

    def _safe_json(self, value: Any, *, depth: int = 0) -> Any:
        if depth > 6:
            return repr(value)
        if value is None or isinstance(value, (str, int, float, bool)):
            return value
        if isinstance(value, Mapping):
            return {str(key): self._safe_json(val, depth=depth + 1) for key, val in value.items()}
        if isinstance(value, (list, tuple, set)):
            return [self._safe_json(item, depth=depth + 1) for item in value]
        if isinstance(value, bytes):
            return value.decode("utf-8", errors="replace")
        return repr(value)


class EventLogger:
    """Factory for per-run event logs when debug event logging is enabled."""

    def __init__(self, *, enabled: bool, base_dir: Path | str | None = None) -> None:
        self.enabled = bool(enabled)
        self._base_dir = Path(base_dir) if base_dir else _default_event_dir()

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def start_run(
        self,
        *,
        run_id: str,
        prompt: str,
        model: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> EventLogRun | _NullEventLogRun:
        if not self.enabled:
            return _NullEventLogRun()
        try:
            self._base_dir.mkdir(parents=True, exist_ok=True)
            path = self._allocate_path(run_id)
            context = {
                "run_id": run_id,
                "prompt": prompt,
                "model": model,
                "metadata": dict(metadata or {}),
            }
            log_run = EventLogRun(path, context=context)
        except OSError:
            LOGGER.warning("Failed to start agent event log", exc_info=True)
            return _NullEventLogRun()
        LOGGER.debug("Agent event log started: %s", path)
        return log_run

    def _allocate_path(self, run_id: str) -> Path:
        timestamp = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
        safe_run_id = "".join(ch for ch in run_id if ch.isalnum())[:12] or "run"
        return self._base_dir / f"run-{timestamp}-{safe_run_id}.jsonl"


__all__ = [
    "EventLogger",
    "EventLogRun",
]
