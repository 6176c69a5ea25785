"""Tests for logging filters and context."""

import logging

import pytest

from nav_logging import (
    ContextFilter,
    CoordinatePrecisionFilter,
    DefaultSessionFilter,
    LogContext,
    log_context,
    log_session_context,
    update_log_context,
)


@pytest.fixture
def make_record():
    """Factory for creating log records with specific messages."""

    def _make_record(msg: str) -> logging.LogRecord:
        return logging.LogRecord(
            name="navigation.session",
            level=logging.INFO,
            pathname="session.py",
            lineno=10,
            msg=msg,
            args=(),
            exc_info=None,
        )

    return _make_record


class TestCoordinatePrecisionFilter:
    def test_truncates_long_coordinates(self, make_record):
        record = make_record("Position 21.027763, 105.834160 matched")
        CoordinatePrecisionFilter().filter(record)

        assert record.msg == "Position 21.027, 105.834 matched"

    def test_negative_coordinates(self, make_record):
        record = make_record("at -23.550520,-46.633308")
        CoordinatePrecisionFilter().filter(record)

        assert record.msg == "at -23.550,-46.633"

    def test_short_decimals_untouched(self, make_record):
        record = make_record("remaining=1234.5m progress=0.75")
        CoordinatePrecisionFilter().filter(record)

        assert record.msg == "remaining=1234.5m progress=0.75"

    def test_other_long_decimals_untouched(self, make_record):
        record = make_record("elapsed=12.345678s ratio 0.123456")
        CoordinatePrecisionFilter().filter(record)

        assert record.msg == "elapsed=12.345678s ratio 0.123456"

    def test_coordinate_fields(self, make_record):
        record = make_record("Coordinate(lon=105.834160, lat=21.027763)")
        CoordinatePrecisionFilter().filter(record)

        assert record.msg == "Coordinate(lon=105.834, lat=21.027)"

    def test_never_drops_records(self, make_record):
        assert CoordinatePrecisionFilter().filter(make_record("plain")) is True


class TestDefaultSessionFilter:
    def test_adds_placeholder(self, make_record):
        record = make_record("msg")
        DefaultSessionFilter().filter(record)
        assert record.session_id == "-"

    def test_keeps_existing_session(self, make_record):
        record = make_record("msg")
        record.session_id = "abc"
        DefaultSessionFilter().filter(record)
        assert record.session_id == "abc"


class TestLogContext:
    def test_context_filter_injects_fields(self, make_record):
        record = make_record("msg")
        with log_session_context("session-1", mode="simulated"):
            ContextFilter().filter(record)

        assert record.session_id == "session-1"
        assert record.mode == "simulated"

    def test_nested_context_restores_outer_fields(self):
        with log_session_context("outer", mode="live"):
            with log_context(state="paused"):
                assert LogContext.get() == {
                    "session_id": "outer",
                    "mode": "live",
                    "state": "paused",
                }
            assert LogContext.get() == {"session_id": "outer", "mode": "live"}
        assert LogContext.get() == {}

    def test_context_restored_after_exception(self):
        with pytest.raises(RuntimeError), log_session_context("s"):
            raise RuntimeError("boom")
        assert LogContext.get() == {}

    def test_record_attributes_win_over_context(self, make_record):
        record = make_record("msg")
        record.mode = "live"
        with log_context(mode="simulated"):
            ContextFilter().filter(record)
        assert record.mode == "live"

    def test_update_inside_block_is_undone_on_exit(self):
        with log_session_context("s", state="navigating"):
            with log_context(mode="live"):
                update_log_context(state="paused")
                assert LogContext.get()["state"] == "paused"
            assert LogContext.get() == {"session_id": "s", "state": "navigating"}
        assert LogContext.get() == {}

    def test_session_context_skips_unknown_fields(self):
        with log_session_context("s"):
            assert LogContext.get() == {"session_id": "s"}
