"""Prometheus metrics for HTTP traffic and booking policy decisions."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from time import perf_counter

from fastapi import Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

HTTP_REQUESTS_TOTAL = Counter(
    "depositguard_http_requests_total",
    "Total number of HTTP requests handled by the API.",
    ["method", "path", "status_code"],
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "depositguard_http_request_duration_seconds",
    "HTTP request latency in seconds.",
    ["method", "path"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

REFUND_DECISIONS_TOTAL = Counter(
    "depositguard_refund_decisions_total",
    "Refund calculations by decision reason.",
    ["reason"],
)

BOOKING_TRANSITIONS_TOTAL = Counter(
    "depositguard_booking_transitions_total",
    "Persisted booking status transitions.",
    ["from_status", "to_status"],
)

PAYMENT_GATEWAY_FAILURES_TOTAL = Counter(
    "depositguard_payment_gateway_failures_total",
    "Payment gateway calls that raised.",
    ["operation"],
)

NO_SHOW_BATCH_BOOKINGS_TOTAL = Counter(
    "depositguard_no_show_batch_bookings_total",
    "Bookings handled by the no-show sweep.",
    ["outcome"],
)

NOTIFICATION_PUBLISH_FAILURES_TOTAL = Counter(
    "depositguard_notification_publish_failures_total",
    "Notification requests that could not be recorded.",
    ["event_type"],
)


def _request_path_label(request: Request) -> str:
    route = request.scope.get("route")
    route_path = getattr(route, "path", None)
    if route_path:
        return str(route_path)
    return request.url.path


async def instrument_http_request(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """Track request count and latency for each endpoint."""
    started_at = perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        path_label = _request_path_label(request)
        method_label = request.method.upper()
        duration_seconds = perf_counter() - started_at

        HTTP_REQUESTS_TOTAL.labels(
            method=method_label,
            path=path_label,
            status_code=str(status_code),
        ).inc()
        HTTP_REQUEST_DURATION_SECONDS.labels(
            method=method_label,
            path=path_label,
        ).observe(duration_seconds)


def build_metrics_response() -> Response:
    """Return metrics payload in Prometheus text format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
