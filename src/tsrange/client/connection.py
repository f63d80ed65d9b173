"""Connection context threaded through every command.

A :class:`RedisContext` bundles the redis client with the options that
influence how commands are sent. It is passed explicitly to series objects,
range commands and the planner; there is no process-wide default connection.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any

import redis

from ..core.time import to_msec
from ..observability import get_logger

if TYPE_CHECKING:
    from redis.client import Pipeline

    from ..config.settings import Settings

__all__ = ["RedisContext", "normalize_args"]

log = get_logger("client")


def normalize_args(*args: Any) -> list[str]:
    """Flatten command arguments into wire strings.

    Nested lists and tuples are flattened, ``None`` is dropped, datetimes
    become epoch milliseconds and everything else is converted with ``str``.

    Example
    -------
    >>> normalize_args("key", ["FILTER_BY_TS", [1, 2]], None)
    ['key', 'FILTER_BY_TS', '1', '2']
    """
    flat: list[str] = []
    for arg in args:
        if arg is None:
            continue
        if isinstance(arg, (list, tuple)):
            flat.extend(normalize_args(*arg))
        elif isinstance(arg, datetime):
            flat.append(str(to_msec(arg)))
        elif isinstance(arg, Enum):
            flat.append(str(arg.value))
        elif isinstance(arg, Decimal):
            flat.append(format(arg, "f"))
        else:
            flat.append(str(arg))
    return flat


class RedisContext:
    """Redis client plus command options.

    Parameters
    ----------
    client
        A ``redis.Redis`` connection to a server with the time-series module
    debug
        Log every command at DEBUG level before it is sent
    filter_chunk_size
        Maximum FILTER_BY_TS values per remote call
    default_timezone
        Zone for calendar bucketing when a request names none

    Example
    -------
    >>> ctx = RedisContext(redis.Redis.from_url("redis://localhost:6379/0"))
    >>> ctx.call("TS.GET", "temperature")
    """

    def __init__(
        self,
        client: redis.Redis,
        *,
        debug: bool = False,
        filter_chunk_size: int = 128,
        default_timezone: str = "UTC",
    ) -> None:
        self.redis = client
        self.debug = debug
        self.filter_chunk_size = filter_chunk_size
        self.default_timezone = default_timezone

    @classmethod
    def from_settings(cls, settings: Settings) -> RedisContext:
        """Build a context (and its redis client) from loaded settings."""
        client = redis.Redis.from_url(settings.redis_url, socket_timeout=settings.socket_timeout)
        return cls(
            client,
            debug=settings.debug,
            filter_chunk_size=settings.filter_chunk_size,
            default_timezone=settings.default_timezone,
        )

    def call(self, name: str, *args: Any, pipeline: Pipeline | None = None) -> Any:
        """Send one command, or queue it on ``pipeline`` when given.

        Connection errors from the client propagate unchanged.
        """
        wire_args = normalize_args(*args)
        if self.debug:
            log.debug(f"{name} {' '.join(wire_args)}")
        if pipeline is not None:
            return pipeline.execute_command(name, *wire_args)
        return self.redis.execute_command(name, *wire_args)

    def pipeline(self) -> Pipeline:
        """A non-transactional pipeline: N commands, one round trip."""
        return self.redis.pipeline(transaction=False)

    def __repr__(self) -> str:
        return f"RedisContext({self.redis!r}, debug={self.debug})"
