"""Tests for the connection context and argument normalization."""

from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import redis

from tsrange.client.aggregation import CalendarUnit
from tsrange.client.connection import RedisContext, normalize_args
from tsrange.config.settings import Settings


def test_normalize_args_flattens_and_drops_none():
    assert normalize_args("key", ["FILTER_BY_TS", [1, 2]], None, ("COUNT", 5)) == [
        "key", "FILTER_BY_TS", "1", "2", "COUNT", "5",
    ]


def test_normalize_args_converts_values():
    args = normalize_args(
        datetime(2024, 1, 1, tzinfo=timezone.utc),
        Decimal("1E+3"),
        Decimal("0.10"),
        CalendarUnit.DAY,
        2.5,
    )

    assert args == ["1704067200000", "1000", "0.10", "day", "2.5"]


def test_call_without_pipeline(context, fake_redis):
    fake_redis.execute_command.return_value = b"OK"

    assert context.call("TS.CREATE", "key", None, ["LABELS", "a", 1]) == b"OK"
    fake_redis.execute_command.assert_called_once_with("TS.CREATE", "key", "LABELS", "a", "1")


def test_call_on_pipeline(context, fake_redis, fake_pipeline):
    pipe = context.pipeline()
    context.call("TS.GET", "key", pipeline=pipe)

    fake_redis.pipeline.assert_called_once_with(transaction=False)
    fake_pipeline.execute_command.assert_called_once_with("TS.GET", "key")
    fake_redis.execute_command.assert_not_called()


def test_debug_logs_each_command(fake_redis, log_records):
    context = RedisContext(fake_redis, debug=True)

    context.call("TS.RANGE", "temperature", "-", "+")

    messages = [r["message"] for r in log_records if r["extra"].get("component") == "client"]
    assert "TS.RANGE temperature - +" in messages


def test_no_command_logging_without_debug(context, log_records):
    context.call("TS.GET", "temperature")

    assert not [r for r in log_records if r["message"].startswith("TS.GET")]


def test_from_settings(monkeypatch):
    client = MagicMock(name="redis")
    from_url = MagicMock(return_value=client)
    monkeypatch.setattr(redis.Redis, "from_url", from_url)

    context = RedisContext.from_settings(
        Settings(
            redis_url="redis://cache:6380/1",
            socket_timeout=1.5,
            filter_chunk_size=64,
            default_timezone="Europe/Brussels",
            debug=True,
        )
    )

    from_url.assert_called_once_with("redis://cache:6380/1", socket_timeout=1.5)
    assert context.redis is client
    assert context.filter_chunk_size == 64
    assert context.default_timezone == "Europe/Brussels"
    assert context.debug is True
