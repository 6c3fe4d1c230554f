"""Centralized application configuration."""

import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field

DEFAULT_DATA_DIR = Path.home() / ".cmuxterm"
DEFAULT_SOCKET_PATH = Path("/tmp/cmux.sock")  # noqa: S108  # nosec B108
DEFAULT_RESPONSE_TIMEOUT = 15.0

# Environment overrides
ENV_SOCKET_PATH = "CMUX_SOCKET_PATH"
ENV_RESPONSE_TIMEOUT = "CMUXTERM_CLI_RESPONSE_TIMEOUT_SEC"
ENV_HOOK_STATE_PATH = "CMUX_CLAUDE_HOOK_STATE_PATH"
ENV_LOG_LEVEL = "CMUX_CTL_LOG_LEVEL"

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class Config(BaseModel):
    """Application-wide configuration."""

    model_config = ConfigDict(frozen=True)

    data_dir: Path = Field(description="Base directory for client state and logs")
    socket_path: Path = Field(default=DEFAULT_SOCKET_PATH, description="Control socket of the running application")
    response_timeout: float = Field(default=DEFAULT_RESPONSE_TIMEOUT, gt=0, description="Hard deadline per request, seconds")
    hook_state_override: Path | None = Field(default=None, description="Explicit session affinity store path")
    log_level: LogLevel = Field(default="INFO", description="Minimum level written to the log file")

    @computed_field(description="Session affinity store file")
    @property
    def hook_state_path(self) -> Path:
        """Session affinity store file."""
        if self.hook_state_override is not None:
            return self.hook_state_override
        return self.data_dir / "claude-hook-sessions.json"

    @computed_field(description="Optional TOML configuration file")
    @property
    def config_path(self) -> Path:
        """Optional TOML configuration file."""
        return self.data_dir / "config.toml"

    @computed_field(description="Log file")
    @property
    def log_path(self) -> Path:
        """Log file."""
        return self.data_dir / "cli.log"

    @staticmethod
    def build(
        data_dir: Path | None = None,
        socket_path: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> "Config":
        """Build a Config from defaults, optional config.toml, environment, and CLI flags.

        Precedence: explicit argument > environment variable > config.toml > default.
        """
        environ = os.environ if env is None else env
        resolved_dir = data_dir if data_dir is not None else DEFAULT_DATA_DIR
        config_path = resolved_dir / "config.toml"

        kwargs: dict[str, Any] = {"data_dir": resolved_dir}
        if config_path.is_file():
            with config_path.open("rb") as f:
                toml_data = tomllib.load(f)
            if isinstance(toml_data.get("socket_path"), str):
                kwargs["socket_path"] = Path(toml_data["socket_path"]).expanduser()
            if isinstance(toml_data.get("response_timeout"), int | float):
                kwargs["response_timeout"] = float(toml_data["response_timeout"])
            if isinstance(toml_data.get("hook_state_path"), str):
                kwargs["hook_state_override"] = Path(toml_data["hook_state_path"]).expanduser()
            if (toml_level := _log_level(toml_data.get("log_level"))) is not None:
                kwargs["log_level"] = toml_level

        if env_socket := environ.get(ENV_SOCKET_PATH, "").strip():
            kwargs["socket_path"] = Path(env_socket).expanduser()
        if (env_timeout := _positive_float(environ.get(ENV_RESPONSE_TIMEOUT))) is not None:
            kwargs["response_timeout"] = env_timeout
        if env_state := environ.get(ENV_HOOK_STATE_PATH, "").strip():
            kwargs["hook_state_override"] = Path(env_state).expanduser()
        if (env_level := _log_level(environ.get(ENV_LOG_LEVEL))) is not None:
            kwargs["log_level"] = env_level

        if socket_path is not None:
            kwargs["socket_path"] = socket_path

        return Config(**kwargs)


def _positive_float(raw: str | None) -> float | None:
    """Parse a positive float, returning None for missing or invalid values."""
    if raw is None:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if value > 0 else None


def _log_level(raw: object) -> str | None:
    """Normalize a level name, returning None for anything unrecognized."""
    if not isinstance(raw, str):
        return None
    level = raw.strip().upper()
    return level if level in _LOG_LEVELS else None
