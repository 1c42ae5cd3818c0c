"""
Prometheus metrics for the booking core, exposed at /metrics.
"""

from fastapi import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

booking_attempts = Counter(
    "booking_attempts_total",
    "Booking creation attempts",
    ["outcome"],  # success, seat_conflict, rejected
)

booking_latency = Histogram(
    "booking_latency_seconds",
    "Booking creation latency",
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)

seat_claim_conflicts = Counter(
    "seat_claim_conflicts_total",
    "Seat claims rejected by the storage uniqueness guard",
)

payment_attempts = Counter(
    "payment_attempts_total",
    "Payment attempts",
    ["outcome"],  # completed, amount_mismatch, rejected
)

refunds_issued = Counter(
    "refunds_issued_total",
    "Refund ledger entries written",
)

bookings_cancelled = Counter(
    "bookings_cancelled_total",
    "Bookings cancelled",
    ["refunded"],  # yes, no
)

cache_operations = Counter(
    "cache_operations_total",
    "Seat map cache operations",
    ["operation", "result"],
)


def metrics_endpoint() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


def record_booking_attempt(outcome: str) -> None:
    booking_attempts.labels(outcome=outcome).inc()


def record_payment_attempt(outcome: str) -> None:
    payment_attempts.labels(outcome=outcome).inc()


def record_cancellation(refunded: bool) -> None:
    bookings_cancelled.labels(refunded="yes" if refunded else "no").inc()


def record_cache_operation(operation: str, hit: bool) -> None:
    cache_operations.labels(operation=operation, result="hit" if hit else "miss").inc()
