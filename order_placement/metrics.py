import logging
import time
from decimal import Decimal

from fastapi import Request, Response
from prometheus_client import (
    CollectorRegistry,
    Counter,
    Histogram,
    PlatformCollector,
    ProcessCollector,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

logger = logging.getLogger(__name__)

REQUEST_DURATION_BUCKETS = (0.1, 0.3, 0.5, 0.7, 1, 3, 5, 7, 10)
ORDER_VALUE_BUCKETS = (10, 50, 100, 500, 1000, 5000)
UNMATCHED_ROUTE = "<unmatched>"


class MetricsRecorder:
    """Prometheus instruments for one application instance.

    Each recorder owns its own registry so several apps (one per test, for
    instance) can live in the same process.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        if registry is None:
            registry = CollectorRegistry()
            ProcessCollector(registry=registry)
            PlatformCollector(registry=registry)
        self.registry = registry

        self.http_request_duration = Histogram(
            "http_request_duration_seconds",
            "Duration of HTTP requests in seconds",
            ["method", "route", "status_code"],
            buckets=REQUEST_DURATION_BUCKETS,
            registry=registry,
        )
        self.http_requests_total = Counter(
            "http_requests_total",
            "Total number of HTTP requests",
            ["method", "route", "status_code"],
            registry=registry,
        )
        self.orders_total = Counter(
            "orders_total",
            "Total number of orders placed",
            ["status"],
            registry=registry,
        )
        self.order_value = Histogram(
            "order_value_dollars",
            "Value of orders in dollars",
            buckets=ORDER_VALUE_BUCKETS,
            registry=registry,
        )
        self.placement_failures_total = Counter(
            "order_placement_failures_total",
            "Total number of order placements that ended in an error",
            ["kind"],
            registry=registry,
        )
        self.orphaned_debits_total = Counter(
            "order_placement_orphaned_debits_total",
            "Balance debits that went through without stock being reserved",
            registry=registry,
        )

    def observe_request(self, method: str, route: str, status_code: int, duration: float) -> None:
        labels = {"method": method, "route": route, "status_code": str(status_code)}
        self.http_request_duration.labels(**labels).observe(duration)
        self.http_requests_total.labels(**labels).inc()

    def record_order(self, status: str, total: Decimal) -> None:
        self.orders_total.labels(status=status).inc()
        self.order_value.observe(float(total))

    def record_failure(self, kind: str) -> None:
        self.placement_failures_total.labels(kind=kind).inc()

    def record_orphaned_debit(self) -> None:
        self.orphaned_debits_total.inc()

    def exposition(self) -> bytes:
        return generate_latest(self.registry)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Times every request and labels it with the matched route template."""

    def __init__(self, app, recorder: MetricsRecorder) -> None:
        super().__init__(app)
        self.recorder = recorder

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start = time.perf_counter()
        logger.info("Order Service: %s %s", request.method, request.url.path)
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            route = request.scope.get("route")
            path = getattr(route, "path", UNMATCHED_ROUTE)
            self.recorder.observe_request(
                request.method,
                path,
                status_code,
                time.perf_counter() - start,
            )
