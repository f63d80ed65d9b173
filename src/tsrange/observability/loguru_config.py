"""Loguru configuration with timing for remote round trips.

This module provides centralized loguru configuration with:
- Console output plus optional structured JSON log files
- Component-bound loggers (client, planner, samples, cli)
- A context manager timing each pipelined round trip

Nothing here is configured on import; the library only emits records through
loguru's global logger, and applications opt in by calling
``configure_loguru`` (the CLI does so from settings).
"""

from __future__ import annotations

import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from loguru import logger

if TYPE_CHECKING:
    from collections.abc import Generator

    from ..config.settings import Settings

__all__ = [
    "COMPONENTS",
    "configure_from_settings",
    "configure_loguru",
    "get_logger",
    "timing_context",
]

COMPONENTS = ("client", "planner", "samples", "cli")


def configure_loguru(
    *,
    log_dir: Path | None = None,
    level: str = "INFO",
    rotation: str = "100 MB",
    retention: str = "10 days",
    compression: str = "zip",
    enable_console: bool = True,
    enable_timing_logs: bool = True,
) -> None:
    """Configure loguru with structured logging and timing support.

    Parameters
    ----------
    log_dir
        Directory for JSONL log files (None: console only)
    level
        Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    rotation
        Log rotation policy (e.g., "100 MB", "1 day")
    retention
        Log retention policy (e.g., "10 days", "1 week")
    compression
        Compression for rotated logs (zip, gz, bz2, xz)
    enable_console
        Enable console output
    enable_timing_logs
        Enable separate timing logs file

    Example
    -------
    >>> from tsrange.observability import configure_loguru
    >>> configure_loguru(log_dir=Path("logs"), level="DEBUG")
    """
    # Remove default handler
    logger.remove()

    if enable_console:
        logger.add(
            sys.stderr,
            format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{extra[component]}</cyan> | "
            "<level>{message}</level>",
            level=level,
            colorize=True,
            backtrace=True,
            diagnose=False,
            filter=_ensure_component,
        )

    if log_dir is None:
        return

    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    # Main log file (structured JSON)
    logger.add(
        log_dir / "tsrange.jsonl",
        format="{message}",
        level=level,
        rotation=rotation,
        retention=retention,
        compression=compression,
        serialize=True,
        backtrace=True,
        diagnose=False,
    )

    if enable_timing_logs:
        logger.add(
            log_dir / "timing.jsonl",
            format="{message}",
            level="DEBUG",
            rotation=rotation,
            retention=retention,
            compression=compression,
            serialize=True,
            backtrace=False,
            diagnose=False,
            filter=lambda record: record["extra"].get("timing", False),
        )

    for component in COMPONENTS:
        logger.add(
            log_dir / f"{component}.jsonl",
            format="{message}",
            level=level,
            rotation=rotation,
            retention=retention,
            compression=compression,
            serialize=True,
            backtrace=True,
            diagnose=False,
            filter=lambda record, comp=component: record["extra"].get("component") == comp,
        )

    logger.bind(component="cli").debug("Loguru configured", log_dir=str(log_dir), level=level)


def configure_from_settings(settings: Settings) -> None:
    """Configure loguru from loaded settings."""
    level = "DEBUG" if settings.debug and settings.log_level not in ("TRACE", "DEBUG") else settings.log_level
    configure_loguru(log_dir=settings.log_dir, level=level)


def get_logger(component: str = "tsrange") -> Any:
    """Get logger instance bound to specific component.

    Parameters
    ----------
    component
        Component name (client, planner, samples, cli)

    Returns
    -------
    Logger
        Loguru logger bound to component
    """
    return logger.bind(component=component)


@contextmanager
def timing_context(
    operation: str,
    *,
    component: str = "tsrange",
    **metadata: Any,
) -> Generator[dict[str, Any], None, None]:
    """Context manager for timing operations.

    Parameters
    ----------
    operation
        Name of the operation being timed
    component
        Component name for filtering logs
    **metadata
        Additional metadata to log

    Yields
    ------
    dict
        Context dictionary that can be updated with additional data

    Example
    -------
    >>> with timing_context("pipeline", component="planner", commands=12) as ctx:
    ...     replies = pipe.execute()
    ...     ctx["replies"] = len(replies)
    """
    start_time_ns = time.perf_counter_ns()

    context: dict[str, Any] = {"operation": operation, **metadata}
    bound = logger.bind(component=component, timing=True, operation=operation)

    bound.debug(f"START: {operation}", phase="start", **metadata)

    try:
        yield context
    finally:
        duration_ns = time.perf_counter_ns() - start_time_ns
        bound.debug(
            f"END: {operation}",
            phase="end",
            duration_ms=duration_ns / 1_000_000,
            duration_ns=duration_ns,
            **{k: v for k, v in context.items() if k != "operation"},
        )


def _ensure_component(record: dict[str, Any]) -> bool:
    record["extra"].setdefault("component", "tsrange")
    return True
