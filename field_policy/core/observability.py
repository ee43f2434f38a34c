"""
Observability for field policy enforcement.

Provides:
- Structured logging with JSON format and correlation IDs
- A correlation ID context variable the host can set per request
- Prometheus metrics for compilation, authorization and projection

Usage:
    from field_policy.core.observability import (
        configure_structured_logging,
        set_correlation_id,
        metrics,
    )
"""

import json
import logging
from contextvars import ContextVar
from datetime import UTC, datetime

from prometheus_client import CollectorRegistry, Counter, Histogram

from field_policy.core.config import settings
from field_policy.core.telemetry import get_span_id, get_trace_id

# Correlation ID - links all logs emitted while checking one request
_request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")


def get_request_id() -> str:
    """Get the current correlation ID from context."""
    return _request_id_ctx.get()


def set_correlation_id(request_id: str) -> None:
    """Set the correlation ID for the current context."""
    _request_id_ctx.set(request_id)


# ============================================================================
# Structured Logging Configuration
# ============================================================================

# LogRecord attributes that are not user supplied `extra` values.
_RESERVED_RECORD_KEYS = frozenset(
    {
        "name",
        "msg",
        "message",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "exc_info",
        "exc_text",
        "stack_info",
    }
)


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs one JSON object per record with:
    - timestamp, service, level, logger, message
    - request_id: correlation ID (if set)
    - trace_id / span_id: OpenTelemetry context (if a span is recording)
    - exception: type and message (if exc_info is set)
    - extra: any additional context from logging.extra
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "service": settings.app_name,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = get_request_id()
        if request_id:
            log_entry["request_id"] = request_id

        trace_id = get_trace_id()
        if trace_id:
            log_entry["trace_id"] = trace_id
        span_id = get_span_id()
        if span_id:
            log_entry["span_id"] = span_id

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
            }

        extra_keys = {k: v for k, v in record.__dict__.items() if k not in _RESERVED_RECORD_KEYS}
        if extra_keys:
            log_entry["extra"] = extra_keys

        return json.dumps(log_entry, default=str)


def configure_structured_logging(level: str = "INFO") -> None:
    """
    Configure the `field_policy` logger hierarchy with JSON output.

    Only the library's own logger is touched so the host application's
    logging setup is left alone.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    package_logger = logging.getLogger("field_policy")
    package_logger.handlers.clear()
    package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    package_logger.addHandler(handler)
    package_logger.propagate = False


def setup_logging() -> None:
    """
    Apply the logging settings to the `field_policy` logger.

    With `structured_logs` enabled the logger gets its own JSON handler;
    otherwise only the level is set and records propagate to the host's
    handlers.
    """
    if settings.structured_logs:
        configure_structured_logging(settings.log_level)
        return
    logging.getLogger("field_policy").setLevel(settings.log_level)


# ============================================================================
# Prometheus Metrics
# ============================================================================

# Use a custom registry to avoid conflicts with the host's metrics
_registry = CollectorRegistry()


class Metrics:
    """
    Centralized metrics collection for field policy enforcement.

    Metrics groups:
    - Compiler: compilation outcome and duration
    - Authorization: check outcomes and rejected field counts
    - Projection: response shaping calls
    """

    def __init__(self, registry: CollectorRegistry) -> None:
        self.registry = registry

        # -------------------------------------------------------------------
        # Compiler Metrics
        # -------------------------------------------------------------------

        self.policy_compilations_total = Counter(
            "policy_compilations_total",
            "Total permitted-path compilations",
            ["status"],
            registry=self.registry,
        )

        self.policy_compile_duration_seconds = Histogram(
            "policy_compile_duration_seconds",
            "Permitted-path compilation duration in seconds",
            buckets=(0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5),
            registry=self.registry,
        )

        # -------------------------------------------------------------------
        # Authorization Metrics
        # -------------------------------------------------------------------

        self.policy_authorizations_total = Counter(
            "policy_authorizations_total",
            "Total authorization checks",
            ["check", "outcome"],
            registry=self.registry,
        )

        self.policy_rejected_fields_total = Counter(
            "policy_rejected_fields_total",
            "Total fields reported by failed authorization checks",
            ["check"],
            registry=self.registry,
        )

        # -------------------------------------------------------------------
        # Projection Metrics
        # -------------------------------------------------------------------

        self.policy_projections_total = Counter(
            "policy_projections_total",
            "Total projections performed",
            ["target"],
            registry=self.registry,
        )


# Global metrics instance
metrics = Metrics(_registry)


def record_compilation(status: str, duration: float) -> None:
    if not settings.metrics_enabled:
        return
    metrics.policy_compilations_total.labels(status=status).inc()
    metrics.policy_compile_duration_seconds.observe(duration)


def record_authorization(check: str, outcome: str, rejected_fields: int = 0) -> None:
    if not settings.metrics_enabled:
        return
    metrics.policy_authorizations_total.labels(check=check, outcome=outcome).inc()
    if rejected_fields:
        metrics.policy_rejected_fields_total.labels(check=check).inc(rejected_fields)


def record_projection(target: str) -> None:
    if not settings.metrics_enabled:
        return
    metrics.policy_projections_total.labels(target=target).inc()
