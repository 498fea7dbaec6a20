"""Service layer helpers (settings, event logging)."""

from .event_log import EventLogger, EventLogRun
from .settings import SecretVault, Settings, SettingsStore, redact_secret

__all__ = [
    "EventLogger",
    "EventLogRun",
    "SecretVault",
    "Settings",
    "SettingsStore",
    "redact_secret",
]
