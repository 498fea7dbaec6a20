"""Current date/time tool."""

from __future__ import annotations

from datetime import UTC, datetime, tzinfo
from typing import Any, Callable, ClassVar, Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..core.cancellation import CancellationToken
from .errors import ToolExecutionError

__all__ = ["GetTimeTool"]


class GetTimeTool:
    """Report the current date and time, optionally in a given timezone."""

    name: ClassVar[str] = "get_current_time"
    description: ClassVar[str] = (
        "Get the current date and time. Optionally specify a timezone "
        "(e.g., 'UTC', 'Local', 'Europe/Berlin')."
    )
    input_schema: ClassVar[Mapping[str, Any]] = {
        "type": "object",
        "properties": {
            "timezone": {
                "type": "string",
                "description": "IANA timezone name, 'UTC', or 'Local' (default).",
            },
        },
        "additionalProperties": False,
    }

    def __init__(self, *, clock: Callable[[tzinfo | None], datetime] | None = None) -> None:
        self._clock = clock or (lambda tz: datetime.now(tz))

    def execute(self, arguments: Mapping[str, Any], cancellation: CancellationToken | None = None) -> str:
        label = str(arguments.get("timezone") or "Local").strip() or "Local"
        now = self._clock(self._resolve(label))
        return f"Current time ({label}): {now:%Y-%m-%d %H:%M:%S}"

    def _resolve(self, label: str) -> tzinfo | None:
        upper = label.upper()
        if upper == "LOCAL":
            return None
        if upper in {"UTC", "GMT", "Z"}:
            return UTC
        try:
            return ZoneInfo(label)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ToolExecutionError(
                message=f"Unknown timezone: {label}",
                tool_name=self.name,
                suggestion="Use an IANA name such as 'America/New_York' or 'UTC'",
            ) from exc
