"""Shared pytest fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from openagent.core import HookRegistry
from openagent.tools import CalculatorTool, ToolRegistry

_ENV_VARS = (
    "OPENAI_API_KEY",
    "OPENAGENT_API_KEY",
    "OPENAGENT_BASE_URL",
    "OPENAGENT_MODEL",
    "OPENAGENT_ORGANIZATION",
    "OPENAGENT_TEMPERATURE",
    "OPENAGENT_REQUEST_TIMEOUT",
    "OPENAGENT_MAX_TURNS",
    "OPENAGENT_MAX_TOKENS",
    "OPENAGENT_DEBUG_LOGGING",
    "OPENAGENT_DEBUG_EVENT_LOGGING",
)


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("OPENAGENT_LOG_DIR", str(tmp_path / "logs"))


@pytest.fixture
def registry() -> ToolRegistry:
    tools = ToolRegistry()
    tools.register_tool(CalculatorTool())
    return tools


@pytest.fixture
def hooks() -> HookRegistry:
    return HookRegistry()
