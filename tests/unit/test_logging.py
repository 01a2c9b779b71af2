"""Unit tests for structured logging helpers."""

import json
import logging
import sys
from contextlib import contextmanager

import pytest

from src.fleet_safety.infrastructure.logging import (
    AUDIT_LOGGER_NAME,
    CorrelationIDFilter,
    JSONFormatter,
    LoggingConfig,
    clear_correlation_id,
    get_audit_logger,
    get_correlation_id,
    log_audit_event,
    log_business_rule_violation,
    log_response,
    log_risk_assessment,
    set_correlation_id,
)


def make_record(message: str = "Risk assessed", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="fleet_safety.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=42,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@contextmanager
def preserved_root_logger():
    """Put the root logger back the way pytest configured it."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    try:
        yield root
    finally:
        for handler in root.handlers[:]:
            if handler not in handlers:
                handler.close()
            root.removeHandler(handler)
        for handler in handlers:
            root.addHandler(handler)
        root.setLevel(level)


class TestCorrelationID:
    """Test cases for correlation ID handling."""

    def test_filter_adds_current_id(self):
        """Test the filter stamps the context value on the record."""
        set_correlation_id("req-123")
        try:
            record = make_record()
            assert CorrelationIDFilter().filter(record) is True
            assert record.correlation_id == "req-123"
            assert get_correlation_id() == "req-123"
        finally:
            clear_correlation_id()

    def test_filter_without_id(self):
        """Test records outside a request are marked unknown."""
        clear_correlation_id()
        record = make_record()

        CorrelationIDFilter().filter(record)

        assert record.correlation_id == "unknown"


class TestJSONFormatter:
    """Test cases for JSONFormatter."""

    def test_format_fields(self):
        """Test the base document."""
        record = make_record(correlation_id="req-1")

        entry = json.loads(JSONFormatter(service_name="risk-test").format(record))

        assert entry["level"] == "INFO"
        assert entry["service"] == "risk-test"
        assert entry["logger"] == "fleet_safety.test"
        assert entry["message"] == "Risk assessed"
        assert entry["correlation_id"] == "req-1"
        assert entry["line"] == 42
        assert entry["timestamp"].endswith("Z")

    def test_extra_fields(self):
        """Test extra attributes land under extra."""
        record = make_record(trip_id="abc", risk_total_score=13)

        entry = json.loads(JSONFormatter().format(record))

        assert entry["extra"] == {"trip_id": "abc", "risk_total_score": 13}

    def test_exception(self):
        """Test exception details are serialized."""
        try:
            raise RuntimeError("pool exhausted")
        except RuntimeError:
            record = make_record(exc_info=sys.exc_info())

        entry = json.loads(JSONFormatter().format(record))

        assert entry["exception"]["type"] == "RuntimeError"
        assert entry["exception"]["message"] == "pool exhausted"
        assert "Traceback" in entry["exception"]["traceback"]


class TestLogHelpers:
    """Test cases for the structured log helpers."""

    @pytest.mark.parametrize("status_code,expected_level", [
        (200, logging.INFO),
        (404, logging.WARNING),
        (503, logging.ERROR),
    ])
    def test_response_level(self, caplog, status_code, expected_level):
        """Test response level follows the status class."""
        caplog.set_level(logging.DEBUG)
        logger = logging.getLogger("fleet_safety.test.http")

        log_response(logger, "GET", "/api/v1/trips", status_code, 12.3456)

        record = caplog.records[-1]
        assert record.levelno == expected_level
        assert record.response_status == status_code
        assert record.response_duration_ms == 12.35

    def test_audit_event(self, caplog):
        """Test audit records go to the audit logger."""
        caplog.set_level(logging.INFO, logger=AUDIT_LOGGER_NAME)

        log_audit_event("trip_approved", "trip-1", actor_id="user-1", notes="ok")

        record = caplog.records[-1]
        assert record.name == AUDIT_LOGGER_NAME
        assert record.audit_action == "trip_approved"
        assert record.audit_actor_id == "user-1"
        assert record.audit_details == {"notes": "ok"}

    def test_non_compliant_assessment_warns(self, caplog):
        """Test non-compliant verdicts are logged as warnings."""
        caplog.set_level(logging.INFO)
        logger = logging.getLogger("fleet_safety.test.risk")

        log_risk_assessment(logger, "trip-1", 60, "critical", "non_compliant")
        log_risk_assessment(logger, "trip-2", 3, "low", "conditional")

        assert [record.levelno for record in caplog.records[-2:]] == [logging.WARNING, logging.INFO]

    def test_business_rule_violation(self, caplog):
        """Test rule violations carry the rule name."""
        caplog.set_level(logging.WARNING)
        logger = logging.getLogger("fleet_safety.test.rules")

        log_business_rule_violation(logger, "approve_without_override", "needs override", trip_id="t")

        record = caplog.records[-1]
        assert record.business_rule == "approve_without_override"
        assert record.trip_id == "t"


class TestLoggingConfig:
    """Test cases for LoggingConfig."""

    def test_file_handlers(self, tmp_path):
        """Test log, error and audit files are created."""
        config = LoggingConfig(log_level="DEBUG", service_name="risk-test", log_dir=str(tmp_path), enable_console=False)

        with preserved_root_logger() as root:
            config.setup_logging()
            get_audit_logger().info("Audit: test")

            assert root.level == logging.DEBUG
            assert len(root.handlers) == 3

        assert (tmp_path / "risk-test.log").exists()
        assert (tmp_path / "risk-test-errors.log").exists()
        assert "Audit: test" in (tmp_path / "risk-test-audit.log").read_text()
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    def test_console_only(self, tmp_path):
        """Test no files are touched when file logging is off."""
        config = LoggingConfig(log_dir=str(tmp_path / "logs"), enable_file=False)

        with preserved_root_logger() as root:
            config.setup_logging()
            assert len(root.handlers) == 1

        assert not (tmp_path / "logs").exists()
