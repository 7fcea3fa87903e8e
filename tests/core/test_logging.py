"""Tests for structlog configuration helpers."""

import io
import json
import logging

import pytest
import structlog

from worldstate.core.logging import (
    LogContext,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    unbind_context,
)


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()


class TestContext:
    def test_bind_and_unbind(self):
        bind_context(minute_bucket="2025-11-14T12:34", hash="abc")
        assert structlog.contextvars.get_contextvars() == {
            "minute_bucket": "2025-11-14T12:34",
            "hash": "abc",
        }
        unbind_context("hash")
        assert structlog.contextvars.get_contextvars() == {"minute_bucket": "2025-11-14T12:34"}
        clear_context()
        assert structlog.contextvars.get_contextvars() == {}

    def test_log_context_scoped(self):
        with LogContext(hash="abc"):
            assert structlog.contextvars.get_contextvars()["hash"] == "abc"
        assert "hash" not in structlog.contextvars.get_contextvars()

    @pytest.mark.asyncio
    async def test_async_log_context(self):
        async with LogContext(minute_bucket="2025-11-14T12:34"):
            assert structlog.contextvars.get_contextvars()["minute_bucket"] == "2025-11-14T12:34"
        assert structlog.contextvars.get_contextvars() == {}


class TestConfigureLogging:
    def test_json_output_to_stream(self):
        stream = io.StringIO()
        configure_logging(level="INFO", json_format=True, service="worldstate-test", stream=stream)

        with LogContext(hash="abc"):
            get_logger("worldstate.test").info("generation.skip", prev_hash="abc")

        line = stream.getvalue().strip().splitlines()[-1]
        record = json.loads(line)
        assert record["event"] == "generation.skip"
        assert record["hash"] == "abc"
        assert record["prev_hash"] == "abc"
        assert record["service.name"] == "worldstate-test"
        assert record["log.level"] == "info"
        assert "@timestamp" in record
