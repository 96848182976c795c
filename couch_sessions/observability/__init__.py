"""
Observability Package - WBS 1.5

This package provides observability infrastructure including:
- Structured JSON logging (WBS 1.5.1)
- Prometheus metrics (WBS 1.5.2)
- OpenTelemetry tracing (WBS 1.5.3)
"""

from couch_sessions.observability.logging import (
    configure_logging,
    get_logger,
    reset_logging,
)
from couch_sessions.observability.metrics import (
    generate_metrics,
    record_conflict_retry,
    record_couchdb_latency,
    record_lookup,
    record_provisioning,
    record_write,
)
from couch_sessions.observability.tracing import (
    create_span,
    get_tracer,
    setup_tracing,
)

__all__ = [
    # Logging
    "configure_logging",
    "get_logger",
    "reset_logging",
    # Metrics
    "generate_metrics",
    "record_conflict_retry",
    "record_couchdb_latency",
    "record_lookup",
    "record_provisioning",
    "record_write",
    # Tracing
    "create_span",
    "get_tracer",
    "setup_tracing",
]
