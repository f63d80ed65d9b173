"""Shared CLI helpers: stable exit codes, connection setup and sample output."""

from __future__ import annotations

import json
from dataclasses import replace
from enum import IntEnum
from typing import Any

import click
import pytz
from redis.exceptions import RedisError

from ..client.connection import RedisContext
from ..config.settings import ConfigError, load_settings
from ..core.errors import AggregationError, FilterError, UnknownPolicyError
from ..core.time import from_msec
from ..observability import configure_from_settings, get_logger
from ..rollups.samples import Samples

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}

log = get_logger("cli")


class ExitCode(IntEnum):
    """Stable exit codes for CLI commands."""

    SUCCESS = 0  # Successful execution
    CONFIG_ERROR = 6  # Configuration or invalid query
    UNKNOWN_ERROR = 7  # Unknown/unexpected error
    REMOTE_ERROR = 8  # Redis connection or command error


CONFIG_ERRORS = (ConfigError, AggregationError, FilterError, UnknownPolicyError, ValueError)


def open_context(ctx: click.Context) -> RedisContext:
    """Redis context for a command, built from settings on first use.

    A context placed in ``ctx.obj["redis_context"]`` is used as is.
    """
    obj = ctx.ensure_object(dict)
    if obj.get("redis_context") is not None:
        return obj["redis_context"]

    settings = load_settings(obj.get("env_file"))
    if obj.get("debug"):
        settings = replace(settings, debug=True)
    configure_from_settings(settings)

    obj["redis_context"] = RedisContext.from_settings(settings)
    return obj["redis_context"]


def resolve_timezone(timezone: str | None, redis_context: RedisContext) -> str:
    """Zone for bucketing and output; unknown names are configuration errors."""
    zone = timezone or redis_context.default_timezone
    try:
        pytz.timezone(zone)
    except pytz.UnknownTimeZoneError as exc:
        raise ConfigError(f"Unknown timezone '{zone}'") from exc
    return zone


def exit_code_for(exc: Exception) -> ExitCode:
    if isinstance(exc, CONFIG_ERRORS):
        return ExitCode.CONFIG_ERROR
    if isinstance(exc, RedisError):
        return ExitCode.REMOTE_ERROR
    return ExitCode.UNKNOWN_ERROR


def render_samples(samples: Samples, *, json_output: bool, timezone: str | None = None) -> None:
    """Echo samples one per line, or as a JSON array; error markers go to stderr."""
    rows: list[dict[str, Any]] = []
    for item in samples:
        if isinstance(item, BaseException):
            click.echo(f"error: {item}", err=True)
            continue
        time = from_msec(item.ts_msec, timezone)
        rows.append({"timestamp": item.ts_msec, "time": time.isoformat(), "value": str(item.value)})

    if json_output:
        click.echo(json.dumps(rows, ensure_ascii=False, indent=2))
        return

    for row in rows:
        click.echo(f"{row['time']}  {row['value']}")

