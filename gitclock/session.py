"""
Session context for GitClock.

Holds everything a sync cycle needs instead of process-wide globals:
- GitClockConfig (file + environment)
- SettingsStore (persisted access token and interval)
- Notifier (user-facing messages)
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from .config import (
    GitClockConfig,
    IntervalError,
    MIN_INTERVAL_MINUTES,
    get_gitclock_dir,
    validate_interval,
)

logger = logging.getLogger(__name__)

SETTINGS_FILENAME = "settings.json"
TOKEN_KEY = "access_token"
INTERVAL_KEY = "interval_minutes"


class AuthError(Exception):
    """Missing or rejected access token."""
    pass


class Notifier(Protocol):
    """Sink for user-facing messages."""

    def info(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class LogNotifier:
    """Notifier that only writes to the log (used when no UI is attached)."""

    def info(self, message: str) -> None:
        logger.info(message)

    def error(self, message: str) -> None:
        logger.error(message)


class SettingsStore:
    """Small JSON key-value store persisted under ~/.gitclock."""

    def __init__(self, path: Path | None = None):
        self.path = path or (get_gitclock_dir() / SETTINGS_FILENAME)

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text())
        except json.JSONDecodeError:
            logger.warning("Ignoring unreadable settings file: %s", self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str, default: Any = None) -> Any:
        return self._read().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def delete(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    def _write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".tmp")
        tmp_path.write_text(json.dumps(data, indent=2))
        tmp_path.replace(self.path)


@dataclass
class Session:
    """Explicit context passed to every sync operation."""
    config: GitClockConfig
    settings: SettingsStore
    notifier: Notifier = field(default_factory=LogNotifier)
    bootstrapped: set[str] = field(default_factory=set)

    @property
    def token(self) -> str | None:
        """Access token: GITHUB_TOKEN wins over the persisted one."""
        return os.environ.get("GITHUB_TOKEN") or self.settings.get(TOKEN_KEY)

    def require_token(self) -> str:
        token = self.token
        if not token:
            raise AuthError("You are not authenticated. Please log in using GitHub.")
        return token

    def save_token(self, token: str) -> None:
        self.settings.set(TOKEN_KEY, token)

    def clear_token(self) -> None:
        self.settings.delete(TOKEN_KEY)

    @property
    def interval_minutes(self) -> int:
        """
        Active sync interval.

        A persisted value is used only if it still satisfies the floor;
        otherwise the configured value applies.
        """
        saved = self.settings.get(INTERVAL_KEY)
        if isinstance(saved, int) and not isinstance(saved, bool) and saved >= MIN_INTERVAL_MINUTES:
            return saved
        return self.config.interval_minutes

    def set_interval(self, value: Any) -> int:
        """
        Validate and persist a new interval.

        Raises:
            IntervalError: the value was rejected; the active interval is unchanged
        """
        try:
            minutes = validate_interval(value)
        except IntervalError:
            logger.info("Rejected interval value %r", value)
            raise
        self.settings.set(INTERVAL_KEY, minutes)
        self.notifier.info(f"Commit interval set to {minutes} minutes")
        return minutes
