"""Application configuration.

Why here:
- Centralises environment variables (pydantic-settings) without polluting the
  CLI layer.
- Lets adapters (HTTP bridge, logging) read config consistently.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.errors import ConfigError


def get_user_config_dir() -> Path:
    """Per-user configuration directory (cross-platform, no dependencies)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "whatsapp-cli"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "whatsapp-cli"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "whatsapp-cli"
    return Path.home() / ".config" / "whatsapp-cli"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


class AppSettings(BaseSettings):
    """Central application settings.

    Why pydantic-settings:
    - Typed, validated values at the edge (env vars / .env files).
    - A single configuration contract for the CLI and the bridge adapter.
    """

    model_config = SettingsConfigDict(
        env_prefix="WHATSAPP_CLI_",
        extra="ignore",
        case_sensitive=False,
        # Order: project first (dev), then the per-user config.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    bridge_url: str = Field(
        default="http://localhost:3000",
        min_length=8,
        description="Base URL of the whatsapp-web.js REST bridge.",
    )
    api_token: str | None = Field(
        default=None,
        description="Bearer token for the bridge. Overrides `api_token_file`.",
    )
    api_token_file: Path = Field(
        default=Path("api.token"),
        description="File written by the bridge's token generator.",
    )
    http_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Timeout per request (seconds).",
    )
    user_agent: str = Field(
        default="whatsapp-cli/0.1",
        min_length=1,
        description="User-Agent sent to the bridge.",
    )
    log_level: str = Field(
        default="WARNING",
        pattern=r"^(?i:debug|info|warning|error|critical)$",
        description="Log level when --verbose is not given.",
    )

    def resolve_api_token(self) -> str | None:
        """Token from settings, else from `api_token_file` if it exists."""

        if self.api_token:
            return self.api_token.strip()
        path = self.api_token_file.expanduser()
        if not path.is_file():
            return None
        try:
            token = path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"could not read API token file {path}: {exc}") from exc
        return token or None


def load_settings(config: str | None = None) -> AppSettings:
    """Build `AppSettings`, reading `config` instead of the default env files.

    Raises `ConfigError` when the file is missing or a value is invalid.
    """

    try:
        if config is None:
            return AppSettings()
        path = Path(config).expanduser()
        if not path.is_file():
            raise ConfigError(f"config file not found: {path}")
        return AppSettings(_env_file=(str(path),))
    except ValidationError as exc:
        raise ConfigError(f"invalid settings: {exc}") from exc
