"""
OpenTelemetry Tracing Module - WBS 1.5.3

This module provides client spans around CouchDB requests.

Pattern: Distributed tracing for observability

WBS Items:
- 1.5.3.1: Configure TracerProvider
- 1.5.3.2: create_span() helper for database calls
"""

from contextlib import contextmanager
from typing import Any, Generator, Optional

from opentelemetry import trace
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.trace import Span, SpanKind, Status, StatusCode, Tracer

_TRACER_NAME = "couch_sessions"


# =============================================================================
# WBS 1.5.3.1: TracerProvider Configuration
# =============================================================================


def setup_tracing(service_name: str = "couch-sessions") -> TracerProvider:
    """
    Configure a global TracerProvider exporting to the console.

    Applications that already configure OpenTelemetry should skip this;
    spans are emitted through whatever provider is installed.

    Args:
        service_name: Name of the service for resource identification

    Returns:
        Configured TracerProvider
    """
    provider = TracerProvider(resource=Resource.create({SERVICE_NAME: service_name}))
    provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(provider)
    return provider


def get_tracer(name: str = _TRACER_NAME) -> Tracer:
    """Get a named tracer instance."""
    return trace.get_tracer(name)


# =============================================================================
# WBS 1.5.3.2: Span Creation Helper
# =============================================================================


@contextmanager
def create_span(
    name: str,
    attributes: Optional[dict[str, Any]] = None,
) -> Generator[Span, None, None]:
    """
    Context manager for a client span.

    Exceptions escaping the block are recorded on the span and re-raised.

    Args:
        name: Span name (e.g. "couchdb.get")
        attributes: Optional span attributes

    Yields:
        Active span
    """
    tracer = get_tracer()
    with tracer.start_as_current_span(name, kind=SpanKind.CLIENT) as span:
        if attributes:
            for key, value in attributes.items():
                span.set_attribute(key, value)
        try:
            yield span
        except Exception as e:
            span.set_status(Status(StatusCode.ERROR, str(e)))
            span.record_exception(e)
            raise
