"""Centralized configuration for tsrange.

Loads configuration from a .env file or the process environment and provides
typed access to settings.

- A fresh checkout works with no configuration at all (local Redis, UTC)
- Invalid config produces clear errors before any command is sent
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import pytz

__all__ = [
    "ConfigError",
    "Settings",
    "generate_example_env",
    "get_settings",
    "load_env_file",
    "load_settings",
]

LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


class ConfigError(Exception):
    """Raised when configuration is missing or invalid."""

    pass


@dataclass
class Settings:
    """Centralized settings for tsrange.

    Attributes
    ----------
    redis_url : str
        URL of the Redis server hosting the time-series module
    default_timezone : str
        Zone used for calendar bucketing when a request names none
    filter_chunk_size : int
        Maximum number of FILTER_BY_TS values per remote call
    socket_timeout : float | None
        Socket timeout handed to the redis client (bounds a whole pipeline)
    debug : bool
        Log every issued command at DEBUG level
    log_level : str
        Logging level
    log_dir : Path | None
        Directory for JSONL log files (console only when unset)
    """

    redis_url: str = "redis://localhost:6379/0"
    default_timezone: str = "UTC"
    filter_chunk_size: int = 128
    socket_timeout: float | None = None
    debug: bool = False

    # Logging
    log_level: str = "INFO"
    log_dir: Path | None = None

    def __post_init__(self):
        """Validate settings after initialization."""
        if self.log_dir and isinstance(self.log_dir, str):
            self.log_dir = Path(self.log_dir)

        if not self.redis_url:
            raise ConfigError(
                "TSRANGE_REDIS_URL must not be empty. "
                "Set it in .env or environment (e.g., TSRANGE_REDIS_URL=redis://localhost:6379/0)"
            )

        if self.default_timezone not in pytz.all_timezones_set:
            raise ConfigError(
                f"Unknown timezone '{self.default_timezone}' in TSRANGE_DEFAULT_TZ. "
                "Use an IANA name such as UTC or Europe/Brussels"
            )

        if self.filter_chunk_size < 1:
            raise ConfigError(
                f"TSRANGE_FILTER_CHUNK_SIZE must be positive, got {self.filter_chunk_size}"
            )

        self.log_level = self.log_level.upper()
        if self.log_level not in LOG_LEVELS:
            raise ConfigError(
                f"Unknown log level '{self.log_level}'. Options: {', '.join(LOG_LEVELS)}"
            )

    @classmethod
    def from_env(cls, env_file: Path | str | None = None) -> Settings:
        """Load settings from environment.

        Loads from .env file if present, otherwise from os.environ.

        Parameters
        ----------
        env_file
            Path to .env file (default: .env in current directory)

        Returns
        -------
        Settings
            Loaded settings

        Raises
        ------
        ConfigError
            If settings are invalid
        """
        if env_file is None:
            env_file = Path(".env")

        if isinstance(env_file, str):
            env_file = Path(env_file)

        if env_file.exists():
            load_env_file(env_file)

        try:
            timeout = os.environ.get("TSRANGE_SOCKET_TIMEOUT")
            return cls(
                redis_url=os.environ.get("TSRANGE_REDIS_URL", "redis://localhost:6379/0"),
                default_timezone=os.environ.get("TSRANGE_DEFAULT_TZ", "UTC"),
                filter_chunk_size=int(os.environ.get("TSRANGE_FILTER_CHUNK_SIZE", "128")),
                socket_timeout=float(timeout) if timeout else None,
                debug=os.environ.get("TSRANGE_DEBUG", "false").lower() in ("true", "1"),
                log_level=os.environ.get("TSRANGE_LOG_LEVEL", "INFO"),
                log_dir=Path(os.environ["TSRANGE_LOG_DIR"]) if "TSRANGE_LOG_DIR" in os.environ else None,
            )

        except (ValueError, KeyError) as exc:
            raise ConfigError(f"Invalid configuration: {exc}") from exc


def load_env_file(env_file: Path) -> None:
    """Load environment variables from .env file.

    Parameters
    ----------
    env_file
        Path to .env file
    """
    with open(env_file) as f:
        for line in f:
            line = line.strip()

            # Skip comments and empty lines
            if not line or line.startswith("#"):
                continue

            if "=" in line:
                key, value = line.split("=", 1)
                key = key.strip()
                value = value.strip()

                if (value.startswith('"') and value.endswith('"')) or (value.startswith("'") and value.endswith("'")):
                    value = value[1:-1]

                os.environ[key] = value


# Global settings instance
_settings: Settings | None = None


def load_settings(env_file: Path | str | None = None) -> Settings:
    """Load settings from environment and remember them.

    Raises
    ------
    ConfigError
        If settings are invalid (clear error message)
    """
    global _settings
    _settings = Settings.from_env(env_file)
    return _settings


def get_settings() -> Settings:
    """Get current settings, loading them from the environment on first use."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def generate_example_env(output_path: Path | None = None) -> str:
    """Generate example .env file with all settings.

    Parameters
    ----------
    output_path
        Optional path to write .env file

    Returns
    -------
    str
        Example .env contents
    """
    example = """# tsrange configuration
# Copy this to .env and adjust values

# ====================
# Redis
# ====================

# Server with the time-series module loaded (optional)
TSRANGE_REDIS_URL=redis://localhost:6379/0

# Socket timeout in seconds for one pipelined round trip (optional)
# TSRANGE_SOCKET_TIMEOUT=5.0

# ====================
# Query planning
# ====================

# Zone for month/day bucketing (optional, default: UTC)
# Examples: UTC, America/New_York, Europe/Brussels
TSRANGE_DEFAULT_TZ=UTC

# Max FILTER_BY_TS values per remote call (optional, default: 128)
TSRANGE_FILTER_CHUNK_SIZE=128

# ====================
# Logging
# ====================

# Log level (optional, default: INFO)
# Options: TRACE, DEBUG, INFO, SUCCESS, WARNING, ERROR, CRITICAL
TSRANGE_LOG_LEVEL=INFO

# Log every command before it is sent (optional, default: false)
TSRANGE_DEBUG=false

# Directory for JSONL logs (optional, console only if not set)
# TSRANGE_LOG_DIR=logs
"""

    if output_path:
        output_path.write_text(example)

    return example
