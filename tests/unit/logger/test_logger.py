"""
Unit Tests for the Logging Subsystem
=====================================

Purpose
-------
Test context propagation, formatters and the queue-based setup.

Test Coverage
-------------
- LogContext (sync and async) and set/clear helpers
- ContextFilter enrichment and extra= precedence
- JSONFormatter output
- ColoredFormatter restores the level name
- setup_logging()/shutdown_logging() lifecycle and health

Testing Strategy
----------------
- Hand-built LogRecords for formatter tests
- setup_logging() is always paired with shutdown_logging()
"""

import asyncio
import json
import logging
import sys

import pytest

from emitter.core.logging import (
    LogContext,
    clear_log_context,
    get_log_context,
    get_logging_health,
    set_log_context,
    setup_logging,
    shutdown_logging,
)
from emitter.core.logging.logger import ColoredFormatter, ContextFilter, JSONFormatter


def make_record(msg="hello", **extra):
    record = logging.LogRecord(
        name="emitter.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


# ============================================================================
# CONTEXT TESTS
# ============================================================================


@pytest.mark.unit
class TestLogContext:
    """Test ContextVar-backed log context."""

    def test_context_manager_sets_and_restores(self):
        with LogContext(event_name="a", dispatch_id="d1"):
            context = get_log_context()
            assert context["event_name"] == "a"
            assert context["correlation_id"] == "d1"

        assert get_log_context() == {}

    def test_nested_context_merges(self):
        with LogContext(emitter_id="e1"):
            with LogContext(event_name="a"):
                context = get_log_context()

        assert context["emitter_id"] == "e1"
        assert context["event_name"] == "a"

    async def test_async_context_manager(self):
        async with LogContext(operation="publish"):
            await asyncio.sleep(0)
            assert get_log_context()["operation"] == "publish"

    def test_set_and_clear(self):
        set_log_context(event_name="a", custom="x")

        assert get_log_context()["custom"] == "x"

        clear_log_context()
        assert get_log_context() == {}

    def test_explicit_correlation_id(self):
        with LogContext(correlation_id="c1", dispatch_id="d1"):
            assert get_log_context()["correlation_id"] == "c1"


# ============================================================================
# FILTER & FORMATTER TESTS
# ============================================================================


@pytest.mark.unit
class TestContextFilter:
    """Test record enrichment."""

    def test_fills_fields_from_context(self):
        record = make_record()

        with LogContext(event_name="a", emitter_id="e1", dispatch_id="d1"):
            ContextFilter().filter(record)

        assert record.event_name == "a"
        assert record.emitter_id == "e1"
        assert record.dispatch_id == "d1"
        assert record.component == "emitter"

    def test_defaults_without_context(self):
        record = make_record()

        ContextFilter().filter(record)

        assert record.event_name == "N/A"
        assert record.operation == "N/A"

    def test_extra_fields_take_precedence(self):
        record = make_record(event_name="explicit")

        with LogContext(event_name="from-context"):
            ContextFilter().filter(record)

        assert record.event_name == "explicit"


@pytest.mark.unit
class TestFormatters:
    """Test JSON and colored output."""

    def test_json_formatter(self):
        record = make_record("dispatching", listener_count=2, event_name="a")
        ContextFilter().filter(record)

        data = json.loads(JSONFormatter().format(record))

        assert data["message"] == "dispatching"
        assert data["level"] == "INFO"
        assert data["event_name"] == "a"
        assert data["extra"]["listener_count"] == 2
        assert "emitter_id" not in data

    def test_json_formatter_serializes_unknown_objects(self):
        record = make_record(payload=object())

        data = json.loads(JSONFormatter().format(record))

        assert data["extra"]["payload"].startswith("<object object")

    def test_json_formatter_includes_exception(self):
        try:
            raise ValueError("bad")
        except ValueError:
            record = make_record(exc_info=sys.exc_info())

        data = json.loads(JSONFormatter().format(record))

        assert "ValueError: bad" in data["exception"]

    def test_colored_formatter_restores_levelname(self):
        record = make_record()

        output = ColoredFormatter(fmt="%(levelname)s %(message)s").format(record)

        assert "\033[94m" in output
        assert record.levelname == "INFO"


# ============================================================================
# SETUP TESTS
# ============================================================================


@pytest.mark.unit
class TestSetupLogging:
    """Test the global logging lifecycle."""

    @pytest.fixture
    def restore_root(self):
        root = logging.getLogger()
        level = root.level
        yield root
        shutdown_logging()
        root.setLevel(level)

    def test_setup_and_shutdown(self, restore_root):
        setup_logging()

        health = get_logging_health()
        assert health.initialized is True
        assert health.queue_max_size > 0

        shutdown_logging()

        assert get_logging_health().initialized is False

    def test_setup_is_idempotent(self, restore_root):
        setup_logging()
        handler_count = len(restore_root.handlers)

        setup_logging()

        assert len(restore_root.handlers) == handler_count

    def test_records_flow_through_queue(self, restore_root):
        setup_logging()

        logging.getLogger("emitter.test").warning("queued")

        assert get_logging_health().records_enqueued >= 1
