"""Prometheus metrics for PanPal.

Provides metrics collection and exposure:
- HTTP request metrics (latency, count)
- Cache metrics (hits, misses, errors, invalidated keys, latency)

Usage:
    from panpal.observability.metrics import get_metrics

    metrics = get_metrics()
    metrics.http_requests_total.labels(method="GET", path="/recipes", status=200).inc()
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from prometheus_client import REGISTRY, Counter, Histogram
from prometheus_client import generate_latest as prometheus_generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from panpal.config import settings

if TYPE_CHECKING:
    from starlette.types import ASGIApp

logger = logging.getLogger(__name__)


@dataclass
class MetricsRegistry:
    """Registry for Prometheus metrics."""

    # HTTP metrics
    http_requests_total: Any = None
    http_request_duration_seconds: Any = None

    # Cache metrics
    cache_hits_total: Any = None
    cache_misses_total: Any = None
    cache_errors_total: Any = None
    cache_invalidated_keys_total: Any = None
    cache_operation_duration_seconds: Any = None

    # Internal state
    _initialized: bool = field(default=False, repr=False)
    _registry: Any = field(default=None, repr=False)

    def initialize(self) -> None:
        """Initialize Prometheus metrics."""
        if self._initialized:
            return

        if not settings.enable_metrics:
            logger.info("Metrics are disabled")
            self._initialized = True
            return

        self._registry = REGISTRY

        self.http_requests_total = Counter(
            "panpal_http_requests_total",
            "Total HTTP requests",
            ["method", "path", "status"],
        )

        self.http_request_duration_seconds = Histogram(
            "panpal_http_request_duration_seconds",
            "HTTP request latency in seconds",
            ["method", "path"],
            buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
        )

        self.cache_hits_total = Counter(
            "panpal_cache_hits_total",
            "Cache hits",
            ["bucket"],
        )

        self.cache_misses_total = Counter(
            "panpal_cache_misses_total",
            "Cache misses",
            ["bucket"],
        )

        self.cache_errors_total = Counter(
            "panpal_cache_errors_total",
            "Cache operations that failed and were degraded",
            ["operation"],
        )

        self.cache_invalidated_keys_total = Counter(
            "panpal_cache_invalidated_keys_total",
            "Keys removed by pattern invalidation",
            ["bucket"],
        )

        self.cache_operation_duration_seconds = Histogram(
            "panpal_cache_operation_duration_seconds",
            "Cache operation latency in seconds",
            ["operation"],
            buckets=(0.0001, 0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1),
        )

        self._initialized = True
        logger.info("Prometheus metrics initialized")

    def generate_latest(self) -> bytes:
        """Generate Prometheus metrics in exposition format."""
        if self._registry is None:
            return b"# Metrics disabled\n"
        return prometheus_generate_latest(self._registry)


# Global metrics registry
metrics_registry = MetricsRegistry()


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry.

    Initializes metrics on first access.
    """
    if not metrics_registry._initialized:
        metrics_registry.initialize()
    return metrics_registry


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware for HTTP request metrics.

    Records request count by method, path, status and a duration histogram.
    """

    def __init__(self, app: "ASGIApp") -> None:
        super().__init__(app)
        self.metrics = get_metrics()

    async def dispatch(self, request: Request, call_next: Callable[[Request], Any]) -> Response:
        """Record metrics for HTTP requests."""
        if request.url.path in ("/health/live", "/health/ready", "/metrics"):
            return await call_next(request)

        method = request.method
        path = self._normalize_path(request.url.path)
        start_time = time.perf_counter()
        status_code = 500  # Default in case of exception

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration = time.perf_counter() - start_time

            if self.metrics.http_requests_total:
                self.metrics.http_requests_total.labels(
                    method=method,
                    path=path,
                    status=status_code,
                ).inc()

            if self.metrics.http_request_duration_seconds:
                self.metrics.http_request_duration_seconds.labels(
                    method=method,
                    path=path,
                ).observe(duration)

    def _normalize_path(self, path: str) -> str:
        """Normalize path by replacing IDs with placeholders.

        This prevents high cardinality in metrics.

        Examples:
            /recipes/abc123 -> /recipes/{id}
            /recipes/abc123/ratings -> /recipes/{id}/ratings
            /recipes/trending -> /recipes/trending
        """
        parts = path.strip("/").split("/")
        normalized = []

        i = 0
        while i < len(parts):
            part = parts[i]
            normalized.append(part)
            if part == "recipes" and i + 1 < len(parts) and parts[i + 1] != "trending":
                normalized.append("{id}")
                i += 1
            i += 1

        return "/" + "/".join(normalized) if normalized else path


def record_cache_hit(bucket: str) -> None:
    """Record cache hit."""
    metrics = get_metrics()
    if metrics.cache_hits_total:
        metrics.cache_hits_total.labels(bucket=bucket).inc()


def record_cache_miss(bucket: str) -> None:
    """Record cache miss."""
    metrics = get_metrics()
    if metrics.cache_misses_total:
        metrics.cache_misses_total.labels(bucket=bucket).inc()


def record_cache_error(operation: str) -> None:
    """Record a degraded cache operation (get, set, delete, invalidate)."""
    metrics = get_metrics()
    if metrics.cache_errors_total:
        metrics.cache_errors_total.labels(operation=operation).inc()


def record_cache_invalidation(bucket: str, deleted: int) -> None:
    """Record keys removed by a pattern invalidation."""
    metrics = get_metrics()
    if metrics.cache_invalidated_keys_total:
        metrics.cache_invalidated_keys_total.labels(bucket=bucket).inc(deleted)


def record_cache_operation(operation: str, duration: float) -> None:
    """Record cache operation duration.

    Args:
        operation: Cache operation (get, set, delete, invalidate)
        duration: Operation duration in seconds
    """
    metrics = get_metrics()
    if metrics.cache_operation_duration_seconds:
        metrics.cache_operation_duration_seconds.labels(operation=operation).observe(duration)
