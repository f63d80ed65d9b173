"""Tests for configuration loading."""

import os
import tempfile
from pathlib import Path

import pytest

from tsrange.config.settings import (
    ConfigError,
    Settings,
    generate_example_env,
    get_settings,
    load_env_file,
    load_settings,
)


@pytest.fixture(autouse=True)
def clean_env():
    """Clean environment variables before each test."""
    original_env = os.environ.copy()

    for var in [k for k in os.environ.keys() if k.startswith("TSRANGE_")]:
        del os.environ[var]

    import tsrange.config.settings as settings_module

    settings_module._settings = None

    yield

    os.environ.clear()
    os.environ.update(original_env)
    settings_module._settings = None


def test_settings_defaults():
    """A fresh checkout works without any configuration."""
    settings = Settings()

    assert settings.redis_url == "redis://localhost:6379/0"
    assert settings.default_timezone == "UTC"
    assert settings.filter_chunk_size == 128
    assert settings.socket_timeout is None
    assert settings.debug is False
    assert settings.log_level == "INFO"
    assert settings.log_dir is None


def test_settings_with_string_log_dir():
    """String log_dir is converted to Path."""
    settings = Settings(log_dir="/tmp/tsrange-logs")

    assert settings.log_dir == Path("/tmp/tsrange-logs")


def test_settings_rejects_unknown_timezone():
    with pytest.raises(ConfigError, match="Unknown timezone 'Mars/Olympus'"):
        Settings(default_timezone="Mars/Olympus")


def test_settings_rejects_empty_redis_url():
    with pytest.raises(ConfigError, match="TSRANGE_REDIS_URL must not be empty"):
        Settings(redis_url="")


def test_settings_rejects_non_positive_chunk_size():
    with pytest.raises(ConfigError, match="must be positive"):
        Settings(filter_chunk_size=0)


def test_settings_normalizes_log_level():
    assert Settings(log_level="debug").log_level == "DEBUG"

    with pytest.raises(ConfigError, match="Unknown log level"):
        Settings(log_level="chatty")


def test_load_env_file_with_quotes_and_comments():
    """Quotes are stripped, comments and blank lines skipped."""
    with tempfile.TemporaryDirectory() as tmpdir:
        env_file = Path(tmpdir) / ".env"
        env_file.write_text(
            """
# Redis
TSRANGE_REDIS_URL="redis://cache:6380/2"

TSRANGE_DEFAULT_TZ='Europe/Brussels'
"""
        )

        load_env_file(env_file)

        assert os.environ["TSRANGE_REDIS_URL"] == "redis://cache:6380/2"
        assert os.environ["TSRANGE_DEFAULT_TZ"] == "Europe/Brussels"


def test_settings_from_env_file():
    with tempfile.TemporaryDirectory() as tmpdir:
        env_file = Path(tmpdir) / ".env"
        env_file.write_text(
            """
TSRANGE_REDIS_URL=redis://cache:6380/2
TSRANGE_DEFAULT_TZ=America/New_York
TSRANGE_FILTER_CHUNK_SIZE=64
TSRANGE_SOCKET_TIMEOUT=2.5
TSRANGE_DEBUG=true
TSRANGE_LOG_LEVEL=WARNING
"""
        )

        settings = Settings.from_env(env_file)

        assert settings.redis_url == "redis://cache:6380/2"
        assert settings.default_timezone == "America/New_York"
        assert settings.filter_chunk_size == 64
        assert settings.socket_timeout == 2.5
        assert settings.debug is True
        assert settings.log_level == "WARNING"


def test_settings_from_env_invalid_number():
    """Unparseable numbers surface as ConfigError."""
    with tempfile.TemporaryDirectory() as tmpdir:
        env_file = Path(tmpdir) / ".env"
        env_file.write_text("TSRANGE_FILTER_CHUNK_SIZE=lots")

        with pytest.raises(ConfigError, match="Invalid configuration"):
            Settings.from_env(env_file)


def test_settings_from_env_missing_file_uses_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("TSRANGE_DEFAULT_TZ", "Asia/Tokyo")

    settings = Settings.from_env(tmp_path / "missing.env")

    assert settings.default_timezone == "Asia/Tokyo"


def test_load_settings_and_get_settings(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("TSRANGE_FILTER_CHUNK_SIZE=32")

    loaded = load_settings(env_file)

    assert loaded.filter_chunk_size == 32
    assert get_settings() is loaded


def test_get_settings_loads_lazily(tmp_path, monkeypatch):
    """get_settings() falls back to the environment on first use."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("TSRANGE_LOG_LEVEL", "ERROR")

    assert get_settings().log_level == "ERROR"


def test_generate_example_env(tmp_path):
    output = tmp_path / ".env.example"

    example = generate_example_env(output)

    assert output.read_text() == example
    for var in ("TSRANGE_REDIS_URL", "TSRANGE_DEFAULT_TZ", "TSRANGE_FILTER_CHUNK_SIZE", "TSRANGE_LOG_LEVEL"):
        assert var in example
