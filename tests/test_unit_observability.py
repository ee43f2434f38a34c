"""
Tests for observability features.

Tests cover:
- Correlation ID context
- Structured JSON logging
- Settings-driven logging setup
- Prometheus metrics recording and the metrics toggle
"""

import json
import logging
import sys
from unittest.mock import patch

import pytest
from prometheus_client import generate_latest

from field_policy.core.observability import (
    StructuredFormatter,
    configure_structured_logging,
    get_request_id,
    metrics,
    record_authorization,
    record_compilation,
    record_projection,
    set_correlation_id,
    setup_logging,
)


def make_record(msg="Test message", args=(), exc_info=None):
    return logging.LogRecord(
        name="field_policy.test",
        level=logging.INFO,
        pathname="/test/path.py",
        lineno=42,
        msg=msg,
        args=args,
        exc_info=exc_info,
    )


@pytest.fixture
def package_logger():
    """Restore the package logger after a test reconfigures it."""
    logger = logging.getLogger("field_policy")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield logger
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate


class TestCorrelationId:
    """Tests for the correlation ID context variable."""

    @pytest.mark.anyio
    async def test_default_is_empty(self):
        assert get_request_id() == ""

    @pytest.mark.anyio
    async def test_set_and_get(self):
        set_correlation_id("req-123")
        try:
            assert get_request_id() == "req-123"
        finally:
            set_correlation_id("")


class TestStructuredLogging:
    """Tests for structured JSON logging."""

    @pytest.mark.anyio
    async def test_structured_formatter_outputs_json(self):
        parsed = json.loads(StructuredFormatter().format(make_record("Rejected %s", ("qux",))))

        assert parsed["level"] == "INFO"
        assert parsed["logger"] == "field_policy.test"
        assert parsed["message"] == "Rejected qux"
        assert parsed["service"] == "field-policy"
        assert parsed["timestamp"].endswith("+00:00")
        assert "extra" not in parsed

    @pytest.mark.anyio
    async def test_structured_formatter_includes_request_id(self):
        set_correlation_id("req-456")
        try:
            parsed = json.loads(StructuredFormatter().format(make_record()))
        finally:
            set_correlation_id("")

        assert parsed["request_id"] == "req-456"

    @pytest.mark.anyio
    async def test_structured_formatter_includes_extra_fields(self):
        record = make_record()
        record.check = "fields"

        parsed = json.loads(StructuredFormatter().format(record))

        assert parsed["extra"] == {"check": "fields"}

    @pytest.mark.anyio
    async def test_structured_formatter_includes_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = make_record(exc_info=sys.exc_info())

        parsed = json.loads(StructuredFormatter().format(record))

        assert parsed["exception"] == {"type": "ValueError", "message": "boom"}

    @pytest.mark.anyio
    async def test_configure_structured_logging(self, package_logger):
        configure_structured_logging("DEBUG")

        assert package_logger.level == logging.DEBUG
        assert package_logger.propagate is False
        assert len(package_logger.handlers) == 1
        assert isinstance(package_logger.handlers[0].formatter, StructuredFormatter)

    @pytest.mark.anyio
    @patch("field_policy.core.config.settings.structured_logs", True)
    @patch("field_policy.core.config.settings.log_level", "WARNING")
    async def test_setup_logging_structured(self, package_logger):
        setup_logging()

        assert package_logger.level == logging.WARNING
        assert isinstance(package_logger.handlers[0].formatter, StructuredFormatter)

    @pytest.mark.anyio
    @patch("field_policy.core.config.settings.structured_logs", False)
    @patch("field_policy.core.config.settings.log_level", "ERROR")
    async def test_setup_logging_plain(self, package_logger):
        setup_logging()

        assert package_logger.level == logging.ERROR
        assert package_logger.propagate is True


class TestMetrics:
    """Tests for metric recording helpers."""

    @pytest.mark.anyio
    async def test_record_compilation(self, metric_value):
        before = metric_value("policy_compilations_total", {"status": "success"})
        count_before = metric_value("policy_compile_duration_seconds_count")

        record_compilation("success", 0.001)

        assert metric_value("policy_compilations_total", {"status": "success"}) == before + 1
        assert metric_value("policy_compile_duration_seconds_count") == count_before + 1

    @pytest.mark.anyio
    async def test_record_authorization_counts_rejected_fields(self, metric_value):
        before = metric_value("policy_rejected_fields_total", {"check": "values"})

        record_authorization("values", "rejected", rejected_fields=3)
        record_authorization("values", "allowed")

        assert metric_value("policy_rejected_fields_total", {"check": "values"}) == before + 3

    @pytest.mark.anyio
    async def test_record_projection(self, metric_value):
        before = metric_value("policy_projections_total", {"target": "response"})
        record_projection("response")
        assert metric_value("policy_projections_total", {"target": "response"}) == before + 1

    @pytest.mark.anyio
    @patch("field_policy.core.config.settings.metrics_enabled", False)
    async def test_metrics_disabled(self, metric_value):
        before = metric_value("policy_projections_total", {"target": "response"})
        record_projection("response")
        assert metric_value("policy_projections_total", {"target": "response"}) == before

    @pytest.mark.anyio
    async def test_registry_exposition(self):
        record_projection("response")
        output = generate_latest(metrics.registry).decode()

        assert "policy_projections_total" in output
        assert "policy_authorizations_total" in output
