"""
Configuration management for GitClock.

Loads and validates:
- gitclock.yml: Main configuration (target repo, API URL, interval, OAuth)
- Environment overrides (GITCLOCK_REPO_NAME, GITHUB_API_URL, CLIENT_ID, ...)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


CONFIG_FILENAME = "gitclock.yml"
DEFAULT_REPO_NAME = "gitclock-logs"
DEFAULT_API_URL = "https://api.github.com"
DEFAULT_REDIRECT_URI = "http://localhost:5000/oauthCallback"
MIN_INTERVAL_MINUTES = 30


class ConfigError(Exception):
    """Invalid configuration file contents."""
    pass


class IntervalError(ValueError):
    """Rejected sync interval. The message is meant for the user."""
    pass


def validate_interval(value: Any) -> int:
    """
    Validate a sync interval in minutes.

    Accepts ints or integer strings ("45"). Nothing is clamped: values
    below MIN_INTERVAL_MINUTES are rejected.

    Raises:
        IntervalError: non-integer or below-minimum value
    """
    if isinstance(value, bool):
        raise IntervalError("Please enter a valid number")
    if isinstance(value, int):
        minutes = value
    else:
        try:
            minutes = int(str(value).strip())
        except ValueError:
            raise IntervalError("Please enter a valid number")

    if minutes < MIN_INTERVAL_MINUTES:
        raise IntervalError(
            f"Commit interval cannot be less than {MIN_INTERVAL_MINUTES} minutes"
        )
    return minutes


@dataclass
class OAuthConfig:
    """OAuth app credentials and endpoints used by `gitclock login`."""
    client_id: str = ""
    client_secret: str = ""
    auth_url: str = ""
    token_url: str = "https://github.com/login/oauth/access_token"
    redirect_uri: str = DEFAULT_REDIRECT_URI


@dataclass
class GitClockConfig:
    """Complete GitClock configuration."""
    repo_name: str = DEFAULT_REPO_NAME
    api_url: str = DEFAULT_API_URL
    interval_minutes: int = MIN_INTERVAL_MINUTES
    oauth: OAuthConfig = field(default_factory=OAuthConfig)

    @classmethod
    def load(cls, repo_root: Path | None = None) -> "GitClockConfig":
        """Load configuration from repo root directory, then apply environment overrides."""
        if repo_root is None:
            repo_root = get_repo_root()

        config = cls()
        config_path = repo_root / CONFIG_FILENAME
        if config_path.exists():
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
            if not isinstance(data, dict):
                raise ConfigError(f"{config_path}: expected a mapping at top level")
            config = cls._parse_main_config(data)

        config._apply_env(os.environ)
        return config

    @classmethod
    def _parse_main_config(cls, data: dict[str, Any]) -> "GitClockConfig":
        """Parse main configuration dictionary."""
        config = cls()

        config.repo_name = data.get("repo_name", DEFAULT_REPO_NAME)
        config.api_url = data.get("api_url", DEFAULT_API_URL)

        if "interval_minutes" in data:
            try:
                config.interval_minutes = validate_interval(data["interval_minutes"])
            except IntervalError as e:
                raise ConfigError(f"interval_minutes: {e}") from e

        oauth_data = data.get("oauth", {}) or {}
        config.oauth = OAuthConfig(
            client_id=oauth_data.get("client_id", ""),
            client_secret=oauth_data.get("client_secret", ""),
            auth_url=oauth_data.get("auth_url", ""),
            token_url=oauth_data.get("token_url", OAuthConfig.token_url),
            redirect_uri=oauth_data.get("redirect_uri", DEFAULT_REDIRECT_URI),
        )

        return config

    def _apply_env(self, env: Any) -> None:
        """Environment variables win over the YAML file."""
        repo_name = env.get("GITCLOCK_REPO_NAME") or env.get("REPO_NAME")
        if repo_name:
            self.repo_name = repo_name
        if env.get("GITHUB_API_URL"):
            self.api_url = env["GITHUB_API_URL"]

        # Names kept compatible with existing .env files
        for attr, var in (
            ("client_id", "CLIENT_ID"),
            ("client_secret", "CLIENT_SECRET"),
            ("auth_url", "AUTH_URL"),
            ("token_url", "TOKEN_URL"),
            ("redirect_uri", "REDIRECT_URI"),
        ):
            if env.get(var):
                setattr(self.oauth, attr, env[var])

        self.api_url = self.api_url.rstrip("/")


def get_repo_root() -> Path:
    """Find the repository root (directory containing .git)."""
    current = Path.cwd()
    while current != current.parent:
        if (current / ".git").exists():
            return current
        current = current.parent
    # No .git found, use current directory
    return Path.cwd()


def get_gitclock_dir() -> Path:
    """Get the per-user GitClock directory (settings live here)."""
    override = os.environ.get("GITCLOCK_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".gitclock"
