"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at the /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Registration state machine
registration_transitions = Counter(
    'registration_transitions_total',
    'Committed registration status transitions',
    ['from_status', 'to_status']
)

capacity_rejections = Counter(
    'capacity_rejections_total',
    'Approvals refused because the event had no free slots',
    ['path']  # single, bulk
)

transition_latency = Histogram(
    'registration_transition_latency_seconds',
    'Time spent inside the transition transaction',
    ['path'],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Bulk orchestration
bulk_operations = Counter(
    'bulk_operations_total',
    'Bulk registration actions',
    ['action', 'result']  # result: applied, empty, failed
)

# Archive
archived_registrations = Counter(
    'archived_registrations_total',
    'Registrations copied into the archive before deletion',
    ['source']
)

# Side effects (post-commit)
side_effect_failures = Counter(
    'side_effect_failures_total',
    'Post-commit side effects that raised and were swallowed',
    ['kind']  # audit, email, notification
)

# Cache
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set/invalidate, hit/miss/ok/error
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_transition(from_status: str, to_status: str):
    registration_transitions.labels(from_status=from_status, to_status=to_status).inc()


def record_capacity_rejection(path: str):
    """Path: single, bulk"""
    capacity_rejections.labels(path=path).inc()


def record_bulk_operation(action: str, result: str):
    bulk_operations.labels(action=action, result=result).inc()


def record_archived(source: str, count: int):
    if count:
        archived_registrations.labels(source=source).inc(count)


def record_side_effect_failure(kind: str):
    side_effect_failures.labels(kind=kind).inc()


def record_cache_operation(operation: str, result: str):
    """Result: hit, miss, ok, error"""
    cache_operations.labels(operation=operation, result=result).inc()
