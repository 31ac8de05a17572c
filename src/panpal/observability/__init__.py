"""Observability module for PanPal.

Provides metrics and structured logging:
- Prometheus metrics (HTTP and cache)
- JSON structured logging with request correlation
"""

from panpal.observability.logging import (
    LogContext,
    configure_logging,
    request_id_var,
    user_id_var,
)
from panpal.observability.metrics import (
    MetricsMiddleware,
    get_metrics,
    metrics_registry,
)

__all__ = [
    # Logging
    "configure_logging",
    "LogContext",
    "request_id_var",
    "user_id_var",
    # Metrics
    "metrics_registry",
    "get_metrics",
    "MetricsMiddleware",
]
