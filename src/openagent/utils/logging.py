"""Process logging for the chat front end, configured from :class:`Settings`."""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

from ..services.settings import redact_secret

if TYPE_CHECKING:
    from ..services.settings import Settings

__all__ = ["SecretRedactingFilter", "get_log_path", "resolve_level", "setup_logging"]

LOG_DIR_ENV = "OPENAGENT_LOG_DIR"
LOG_FILE_NAME = "openagent.log"
_DEFAULT_LOG_DIR = Path.home() / ".openagent" / "logs"
_NOISY_LOGGERS: tuple[str, ...] = ("asyncio", "httpx", "httpcore", "openai")
_MAX_BYTES = 1_000_000
_BACKUP_COUNT = 3
_LOG_PATH: Path | None = None


class SecretRedactingFilter(logging.Filter):
    """Mask configured secrets (the API key) wherever they show up in a record."""

    def __init__(self, secrets: Iterable[str]) -> None:
        super().__init__()
        self._secrets = tuple(secret for secret in secrets if secret)

    def filter(self, record: logging.LogRecord) -> bool:
        if not self._secrets:
            return True
        message = record.getMessage()
        redacted = message
        for secret in self._secrets:
            if secret in redacted:
                redacted = redacted.replace(secret, redact_secret(secret))
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def resolve_level(settings: Settings | None = None, *, debug: bool = False) -> int:
    """DEBUG when requested on the command line or via ``debug_logging``."""

    if debug or (settings is not None and settings.debug_logging):
        return logging.DEBUG
    return logging.INFO


def setup_logging(
    settings: Settings | None = None,
    *,
    debug: bool = False,
    log_dir: Path | str | None = None,
    console: bool = True,
) -> Path:
    """Install a rotating file handler plus a warnings-only console handler.

    The level follows ``settings.debug_logging`` (or ``debug``), so prompt
    payload logging from the model client reaches the file whenever it is
    enabled. The configured API key is masked in every handler. Calling
    again replaces the previous configuration.

    Returns:
        The path of the log file.
    """

    global _LOG_PATH
    level = resolve_level(settings, debug=debug)
    target_dir = _resolve_log_dir(log_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    log_path = target_dir / LOG_FILE_NAME

    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    redactor = SecretRedactingFilter([settings.api_key] if settings is not None else [])

    file_handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=_MAX_BYTES, backupCount=_BACKUP_COUNT, encoding="utf-8"
    )
    file_handler.setLevel(level)
    handlers: list[logging.Handler] = [file_handler]

    if console:
        console_handler = logging.StreamHandler()
        # Progress is rendered from events; the console only shows problems.
        console_handler.setLevel(logging.WARNING)
        handlers.append(console_handler)

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(redactor)

    logging.basicConfig(level=level, handlers=handlers, force=True)
    logging.captureWarnings(True)
    _tune_external_loggers(level)

    _LOG_PATH = log_path
    return log_path


def get_log_path() -> Path | None:
    """Return the currently configured log file if available."""

    return _LOG_PATH


def _resolve_log_dir(log_dir: Path | str | None) -> Path:
    env_override = os.environ.get(LOG_DIR_ENV)
    return Path(log_dir or env_override or _DEFAULT_LOG_DIR).expanduser()


def _tune_external_loggers(root_level: int) -> None:
    # Third-party DEBUG output would drown the prompt payload records.
    for logger_name in _NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(max(root_level, logging.WARNING))
