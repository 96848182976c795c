"""
Prometheus Metrics Module - WBS 1.5.2

This module provides Prometheus counters for the session store.

Reference:
- Newman (Building Microservices pp. 273-275): Services "expose basic
  metrics themselves" including "response times and error rates"

Pattern: Metrics collection for observability

WBS Items:
- 1.5.2.1: Lookup counter (hit / miss / error kept apart)
- 1.5.2.2: Conflict retry counter
- 1.5.2.3: Write outcome counter
- 1.5.2.4: Provisioning outcome counter
- 1.5.2.5: Request duration histogram for CouchDB calls
"""

from prometheus_client import REGISTRY, Counter, Histogram, generate_latest

# =============================================================================
# WBS 1.5.2.1: Lookups
# A failed fetch and a missing session both look like "no session" to the
# caller; this counter keeps them apart for monitoring.
# =============================================================================

SESSION_LOOKUPS_TOTAL = Counter(
    name="couch_sessions_lookups_total",
    documentation="Session lookups by result (hit, miss, error)",
    labelnames=["result"],
)

# =============================================================================
# WBS 1.5.2.2-3: Writes
# =============================================================================

CONFLICT_RETRIES_TOTAL = Counter(
    name="couch_sessions_conflict_retries_total",
    documentation="Writes re-issued after a document update conflict",
    labelnames=["operation"],
)

WRITES_TOTAL = Counter(
    name="couch_sessions_writes_total",
    documentation="Session writes by final outcome",
    labelnames=["operation", "outcome"],
)

# =============================================================================
# WBS 1.5.2.4: Provisioning
# =============================================================================

PROVISIONING_TOTAL = Counter(
    name="couch_sessions_provisioning_total",
    documentation="Database provisioning attempts by outcome",
    labelnames=["outcome"],
)

# =============================================================================
# WBS 1.5.2.5: CouchDB Request Latency
# =============================================================================

COUCHDB_REQUEST_DURATION_SECONDS = Histogram(
    name="couch_sessions_couchdb_request_duration_seconds",
    documentation="CouchDB request duration in seconds",
    labelnames=["operation"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)


# =============================================================================
# Helper Functions
# =============================================================================


def record_lookup(result: str) -> None:
    """
    Record a session lookup.

    Args:
        result: "hit", "miss" or "error"
    """
    SESSION_LOOKUPS_TOTAL.labels(result=result).inc()


def record_conflict_retry(operation: str) -> None:
    """Record one conflict retry for a write operation (set, touch)."""
    CONFLICT_RETRIES_TOTAL.labels(operation=operation).inc()


def record_write(operation: str, outcome: str) -> None:
    """
    Record the final outcome of a write.

    Args:
        operation: "set" or "touch"
        outcome: "ok", "exhausted" or "error"
    """
    WRITES_TOTAL.labels(operation=operation, outcome=outcome).inc()


def record_provisioning(outcome: str) -> None:
    """
    Record a provisioning outcome.

    Args:
        outcome: "existing", "created" or "failed"
    """
    PROVISIONING_TOTAL.labels(outcome=outcome).inc()


def record_couchdb_latency(operation: str, duration: float) -> None:
    """Record how long a CouchDB request took."""
    COUCHDB_REQUEST_DURATION_SECONDS.labels(operation=operation).observe(duration)


def generate_metrics() -> str:
    """
    Generate Prometheus metrics text format.

    Returns:
        Prometheus exposition format text
    """
    return generate_latest(REGISTRY).decode("utf-8")
