"""Tests for the structured logging system (etl_kernel/logging_config.py)."""

import json
import logging
from datetime import date
from io import StringIO
from pathlib import Path
from uuid import uuid4

import pytest

from etl_kernel.exceptions import FieldAccessError
from etl_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_log(stream: StringIO) -> dict:
    """Parse the first JSON log line from a stream."""
    line = stream.getvalue().strip().split("\n")[0]
    return json.loads(line)


def _parse_all_logs(stream: StringIO) -> list[dict]:
    """Parse all JSON log lines from a stream."""
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


# ---------------------------------------------------------------------------
# StructuredFormatter tests
# ---------------------------------------------------------------------------


class TestStructuredFormatter:
    """Tests for JSON log output format."""

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "etl.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("step_done", extra={"read_count": 42, "status": "completed"})

        record = _parse_log(stream)
        assert record["read_count"] == 42
        assert record["status"] == "completed"

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        LogContext.set(correlation_id="abc-123", step_name="etl_step_0_Customers")
        logger.info("test_msg")

        record = _parse_log(stream)
        assert record["correlation_id"] == "abc-123"
        assert record["step_name"] == "etl_step_0_Customers"

    def test_exception_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        try:
            raise ValueError("boom")
        except ValueError:
            logger.error("failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "traceback" in record

    def test_etl_exception_code_extracted(self):
        """ETL exceptions carry a .code attribute and structured fields."""
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")

        try:
            raise FieldAccessError("source.Customers", "address.city", "address")
        except FieldAccessError:
            logger.error("access_error", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "FIELD_ACCESS_FAILED"
        assert record["exc_type"] == "FieldAccessError"
        assert record["exc_path"] == "address.city"
        assert record["exc_segment"] == "address"

    def test_no_context_fields_when_empty(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("bare_message")

        record = _parse_log(stream)
        assert "correlation_id" not in record
        assert "job_name" not in record

    def test_non_json_values_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        uid = uuid4()
        logger.info(
            "with_values",
            extra={
                "run_id": uid,
                "as_of": date(2024, 3, 1),
                "config_dir": Path("/etc/etl"),
                "formats": ("csv", "xml"),
            },
        )

        record = _parse_log(stream)
        assert record["run_id"] == str(uid)
        assert record["as_of"] == "2024-03-01"
        assert record["config_dir"] == "/etc/etl"
        assert record["formats"] == ["csv", "xml"]

    def test_valid_json_every_line(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        logs = _parse_all_logs(stream)
        # default level is INFO, so the debug line is dropped
        assert len(logs) == 2
        for record in logs:
            assert "ts" in record
            assert "level" in record
            assert "logger" in record
            assert "message" in record


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:
    """Tests for context propagation."""

    def test_set_and_get(self):
        LogContext.set(correlation_id="x", job_name="customers-demo")
        assert LogContext.get_all() == {"correlation_id": "x", "job_name": "customers-demo"}

    def test_clear(self):
        LogContext.set(correlation_id="x")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_context_manager(self):
        LogContext.set(correlation_id="outer")
        with LogContext.bind(correlation_id="inner"):
            assert LogContext.get_all()["correlation_id"] == "inner"
        assert LogContext.get_all()["correlation_id"] == "outer"

    def test_bind_restores_none(self):
        """bind() restores to None if there was no previous value."""
        assert "step_name" not in LogContext.get_all()
        with LogContext.bind(step_name="temp"):
            assert LogContext.get_all()["step_name"] == "temp"
        assert "step_name" not in LogContext.get_all()

    def test_bind_rejects_unknown_field(self):
        with pytest.raises(TypeError, match="event_id"):
            LogContext.bind(event_id="e")

    def test_all_fields(self):
        LogContext.set(
            correlation_id="c",
            job_name="j",
            step_name="s",
            source_model="Customers",
            target_model="CustomerExport",
        )
        ctx = LogContext.get_all()
        assert len(ctx) == 5
        assert ctx["source_model"] == "Customers"
        assert ctx["target_model"] == "CustomerExport"


# ---------------------------------------------------------------------------
# configure_logging tests
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    """Tests for initialization."""

    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)  # second call is no-op
        root = logging.getLogger("etl")
        assert len(root.handlers) == 1

    def test_get_logger_returns_child(self):
        logger = get_logger("pipeline.assembler")
        assert logger.name == "etl.pipeline.assembler"

    def test_logger_hierarchy(self):
        """Child loggers inherit the etl root config."""
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        child = get_logger("deep.nested.module")
        child.debug("hierarchy_test")

        record = _parse_log(stream)
        assert record["message"] == "hierarchy_test"
        assert record["logger"] == "etl.deep.nested.module"
