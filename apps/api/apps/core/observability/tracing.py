"""
Tracing support (OpenTelemetry API).

Spans are recorded when an OpenTelemetry SDK is configured for the
process; with the bare API installed they are no-ops, and span
start/finish is additionally logged at DEBUG level.
"""
import logging
import time
from contextlib import contextmanager
from typing import Optional, Dict, Any

from opentelemetry import trace
from opentelemetry.trace import SpanKind, Status, StatusCode

logger = logging.getLogger(__name__)

tracer = trace.get_tracer(__name__)

_SPAN_KINDS = {
    'server': SpanKind.SERVER,
    'client': SpanKind.CLIENT,
    'internal': SpanKind.INTERNAL,
}


@contextmanager
def trace_span(
    name: str,
    kind: Optional[str] = None,
    attributes: Optional[Dict[str, Any]] = None
):
    """
    Context manager for creating trace spans.

    Args:
        name: Span name
        kind: Span kind (server, client, internal)
        attributes: Span attributes

    Usage:
        with trace_span('approve_return', attributes={'return_id': str(ret.id)}):
            # ... operation ...
    """
    start_time = time.time()
    span_kind = _SPAN_KINDS.get(kind, SpanKind.INTERNAL)

    with tracer.start_as_current_span(name, kind=span_kind) as span:
        for key, value in (attributes or {}).items():
            span.set_attribute(key, value)

        try:
            yield span
        except Exception as e:
            span.set_status(Status(StatusCode.ERROR, e.__class__.__name__))
            span.set_attribute('error.type', e.__class__.__name__)
            logger.debug(
                f'Span failed: {name}',
                extra={
                    'event': 'span_error',
                    'span_name': name,
                    'duration_ms': (time.time() - start_time) * 1000,
                    'error_type': e.__class__.__name__,
                }
            )
            raise
        else:
            logger.debug(
                f'Span completed: {name}',
                extra={
                    'event': 'span_complete',
                    'span_name': name,
                    'duration_ms': (time.time() - start_time) * 1000,
                }
            )


def add_span_attribute(key: str, value: Any):
    """Add attribute to current span if it is recording."""
    span = trace.get_current_span()
    if span.is_recording():
        span.set_attribute(key, value)
