"""Health check endpoints.

Provides Kubernetes-compatible liveness and readiness probes:
- /health/live  - Liveness probe (always returns OK if process is running)
- /health/ready - Readiness probe (checks database and cache connectivity)

The cache never makes the service unready: without it reads fall through to
the database, so a failing cache reports "degraded" with status 200.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any

from fastapi import APIRouter
from fastapi.responses import ORJSONResponse

from panpal.api.deps import CacheDep
from panpal.cache import CacheAsideService
from panpal.persistence.db import health_check as db_health_check

router = APIRouter(tags=["health"])

CHECK_TIMEOUT = 5.0  # seconds


class HealthStatus(str, Enum):
    """Health check status."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    """Health status of a single component."""

    name: str
    status: HealthStatus
    latency_ms: float
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "name": self.name,
            "status": self.status.value,
            "latency_ms": round(self.latency_ms, 2),
        }
        if self.message:
            result["message"] = self.message
        return result


async def check_database() -> ComponentHealth:
    """Check database connectivity."""
    start = time.monotonic()
    try:
        healthy = await asyncio.wait_for(db_health_check(), timeout=CHECK_TIMEOUT)
        message = None if healthy else "Database check failed"
    except asyncio.TimeoutError:
        healthy, message = False, "Database check timed out"

    return ComponentHealth(
        name="database",
        status=HealthStatus.HEALTHY if healthy else HealthStatus.UNHEALTHY,
        latency_ms=(time.monotonic() - start) * 1000,
        message=message,
    )


async def check_cache(cache: CacheAsideService) -> ComponentHealth:
    """Check cache store connectivity; problems only degrade the service."""
    start = time.monotonic()
    if not cache.enabled:
        return ComponentHealth(
            name="cache",
            status=HealthStatus.DEGRADED,
            latency_ms=0.0,
            message="Cache disabled, serving from database",
        )

    try:
        healthy = await asyncio.wait_for(cache.health_check(), timeout=CHECK_TIMEOUT)
        message = None if healthy else f"{cache.store.name} ping failed"
    except asyncio.TimeoutError:
        healthy, message = False, f"{cache.store.name} check timed out"

    return ComponentHealth(
        name="cache",
        status=HealthStatus.HEALTHY if healthy else HealthStatus.DEGRADED,
        latency_ms=(time.monotonic() - start) * 1000,
        message=message,
    )


@router.get("/health/live")
async def live() -> dict[str, str]:
    """Liveness probe.

    Returns OK if the process is running.
    """
    return {"status": "ok"}


@router.get("/health/ready")
async def ready(cache: CacheDep) -> ORJSONResponse:
    """Readiness probe.

    Returns 503 only when the database is unhealthy.
    """
    components = await asyncio.gather(check_database(), check_cache(cache))

    if any(c.status == HealthStatus.UNHEALTHY for c in components):
        overall = HealthStatus.UNHEALTHY
    elif any(c.status == HealthStatus.DEGRADED for c in components):
        overall = HealthStatus.DEGRADED
    else:
        overall = HealthStatus.HEALTHY

    return ORJSONResponse(
        content={"status": overall.value, "components": [c.to_dict() for c in components]},
        status_code=503 if overall == HealthStatus.UNHEALTHY else 200,
    )
