"""
OpenTelemetry tracing helpers for field policy checks.

The library only depends on the OpenTelemetry API. The host application owns
the tracer provider and exporter setup; without one every span is a no-op.

Usage:
    from field_policy.core.telemetry import get_tracer

    with get_tracer().start_as_current_span("field_policy.authorize_fields"):
        ...
"""

import logging

from opentelemetry import trace

logger = logging.getLogger(__name__)

TRACER_NAME = "field_policy"


def get_tracer() -> trace.Tracer:
    """Return the tracer used for field policy spans."""
    return trace.get_tracer(TRACER_NAME)


def get_trace_id() -> str | None:
    """
    Get the current trace ID from OpenTelemetry context.

    Returns:
        Trace ID as hex string, or None if no active span
    """
    current_span = trace.get_current_span()
    if current_span is None:
        return None

    # NonRecordingSpan is used when no span is active
    if not current_span.is_recording():
        return None

    try:
        span_context = current_span.get_span_context()
        if span_context is None:
            return None
        return format(span_context.trace_id, "032x")
    except (AttributeError, ValueError):
        return None


def get_span_id() -> str | None:
    """
    Get the current span ID from OpenTelemetry context.

    Returns:
        Span ID as hex string, or None if no active span
    """
    current_span = trace.get_current_span()
    if current_span is None or not current_span.is_recording():
        return None

    try:
        span_context = current_span.get_span_context()
        if span_context is None:
            return None
        return format(span_context.span_id, "016x")
    except (AttributeError, ValueError):
        return None
