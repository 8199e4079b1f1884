"""Prometheus metrics for monitoring and observability."""

from __future__ import annotations

import platform
import re
import time
from collections.abc import Callable
from functools import lru_cache

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, Info, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from .config import APP_VERSION, SERVICE_NAME

# ==============================================================================
# APPLICATION INFO
# ==============================================================================

app_info = Info("freight_mileage", "Freight mileage API information")
app_info.info(
    {
        "version": APP_VERSION,
        "service": SERVICE_NAME,
        "python_version": platform.python_version(),
    }
)

# ==============================================================================
# HTTP METRICS
# ==============================================================================

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

http_requests_in_progress = Gauge(
    "http_requests_in_progress",
    "HTTP requests currently in progress",
    ["method", "endpoint"],
)

# ==============================================================================
# MILEAGE ENGINE METRICS
# ==============================================================================

mileage_provider_calls_total = Counter(
    "mileage_provider_calls_total",
    "Outbound mileage provider calls by outcome",
    ["provider", "outcome"],
)

mileage_provider_latency_seconds = Histogram(
    "mileage_provider_latency_seconds",
    "Latency of outbound mileage provider calls",
    ["provider"],
    buckets=(0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 15.0),
)

mileage_cache_lookups_total = Counter(
    "mileage_cache_lookups_total",
    "Mileage cache lookups by result (hit, miss, error)",
    ["provider", "result"],
)

mileage_cache_write_failures_total = Counter(
    "mileage_cache_write_failures_total",
    "Write-through failures swallowed by the resolver",
    ["provider"],
)

mileage_fallbacks_total = Counter(
    "mileage_fallbacks_total",
    "Resolutions that advanced to a fallback provider",
    ["provider"],
)

mileage_batch_sentinels_total = Counter(
    "mileage_batch_sentinels_total",
    "Batch lanes replaced by the degraded error placeholder",
)

# ==============================================================================
# CIRCUIT BREAKER METRICS
# ==============================================================================

circuit_breaker_state = Gauge(
    "circuit_breaker_state",
    "Circuit breaker state (0=closed, 1=open, 2=half_open)",
    ["circuit_name"],
)

circuit_breaker_rejected_total = Counter(
    "circuit_breaker_rejected_total",
    "Total circuit breaker rejected calls",
    ["circuit_name"],
)

circuit_breaker_opened_total = Counter(
    "circuit_breaker_opened_total",
    "Total times circuit breaker opened",
    ["circuit_name"],
)


@lru_cache(maxsize=2048)
def normalize_endpoint(path: str) -> str:
    """
    Normalize endpoint path to reduce cardinality.

    Examples:
        /v1/mileage/calculate -> /v1/mileage/calculate
        /v1/things/123 -> /v1/things/{id}
    """
    path = re.sub(
        r"/[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}",
        "/{id}",
        path,
        flags=re.IGNORECASE,
    )
    path = re.sub(r"/\d+", "/{id}", path)
    path = re.sub(r"/[a-zA-Z0-9_-]{20,}", "/{id}", path)
    return path


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Middleware to track HTTP request metrics."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        endpoint = normalize_endpoint(request.url.path)
        http_requests_in_progress.labels(method=method, endpoint=endpoint).inc()
        start_time = time.perf_counter()
        status = "500"
        try:
            response = await call_next(request)
            status = str(response.status_code)
            return response
        finally:
            http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(
                time.perf_counter() - start_time
            )
            http_requests_total.labels(method=method, endpoint=endpoint, status=status).inc()
            http_requests_in_progress.labels(method=method, endpoint=endpoint).dec()


def get_metrics() -> Response:
    """Generate Prometheus metrics response."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "PrometheusMiddleware",
    "circuit_breaker_opened_total",
    "circuit_breaker_rejected_total",
    "circuit_breaker_state",
    "get_metrics",
    "http_request_duration_seconds",
    "http_requests_in_progress",
    "http_requests_total",
    "mileage_batch_sentinels_total",
    "mileage_cache_lookups_total",
    "mileage_cache_write_failures_total",
    "mileage_fallbacks_total",
    "mileage_provider_calls_total",
    "mileage_provider_latency_seconds",
    "normalize_endpoint",
]
