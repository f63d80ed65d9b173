"""Shared fixtures: redis doubles and a context wired to them."""

from unittest.mock import MagicMock

import pytest
from loguru import logger

from tsrange.client.connection import RedisContext


@pytest.fixture
def fake_pipeline():
    """Pipeline double; set ``fake_pipeline.execute.return_value`` per test."""
    pipeline = MagicMock(name="pipeline")
    pipeline.execute.return_value = []
    return pipeline


@pytest.fixture
def fake_redis(fake_pipeline):
    """Redis client double handing out ``fake_pipeline``."""
    client = MagicMock(name="redis")
    client.pipeline.return_value = fake_pipeline
    return client


@pytest.fixture
def context(fake_redis):
    return RedisContext(fake_redis)


@pytest.fixture
def log_records():
    """Collect loguru records emitted during a test."""
    records = []
    handler_id = logger.add(lambda message: records.append(message.record), level="TRACE")
    yield records
    logger.remove(handler_id)


@pytest.fixture
def sent_commands(fake_pipeline):
    """Command tuples queued on the pipeline double, in order."""

    def collect():
        return [call.args for call in fake_pipeline.execute_command.call_args_list]

    return collect
