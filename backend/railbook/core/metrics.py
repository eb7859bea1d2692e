"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking metrics
booking_attempts = Counter(
    'railbook_booking_attempts_total',
    'Total booking attempts',
    ['status']  # success or the error code, e.g. insufficient_seats
)

booking_latency = Histogram(
    'railbook_booking_latency_seconds',
    'Booking transaction latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

cancellation_attempts = Counter(
    'railbook_cancellation_attempts_total',
    'Total cancellation attempts',
    ['status']  # success or the error code, e.g. not_owner
)

# Transaction metrics
transaction_retries = Counter(
    'railbook_transaction_retries_total',
    'Booking/cancellation transactions retried after a transient conflict',
    ['operation']
)

ticket_id_collisions = Counter(
    'railbook_ticket_id_collisions_total',
    'Generated ticket ids that collided with an existing ticket'
)

# Cache metrics
cache_operations = Counter(
    'railbook_cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_booking_attempt(status: str):
    booking_attempts.labels(status=status).inc()


def record_cancellation_attempt(status: str):
    cancellation_attempts.labels(status=status).inc()


def record_retry(operation: str):
    transaction_retries.labels(operation=operation).inc()


def record_cache_operation(operation: str, hit: bool):
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
