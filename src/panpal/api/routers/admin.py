"""Cache administration endpoints.

Endpoints:
    POST /admin/cache/invalidate  - Delete keys matching a pattern in a bucket
    GET  /admin/cache/ttl         - Effective TTL per bucket
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from fastapi import APIRouter
from pydantic import BaseModel, Field

from panpal.api.deps import CacheDep
from panpal.cache import CacheBucket, InvalidationTarget, validate_pattern

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/cache", tags=["admin"])


class InvalidateRequest(BaseModel):
    pattern: str
    bucket: str = Field(default=CacheBucket.DEFAULT, pattern=r"^[^:*?\[\]\\]+$")


class InvalidationResult(BaseModel):
    """Result of a cache invalidation operation."""

    pattern: str
    bucket: str
    deleted_count: int
    failed: list[str]
    enabled: bool
    timestamp: datetime


@router.post("/invalidate", response_model=InvalidationResult)
async def invalidate_cache(body: InvalidateRequest, cache: CacheDep) -> InvalidationResult:
    """Invalidate cache keys matching a pattern.

    Uses SCAN to find matching keys and DEL to remove them.
    WARNING: This is a destructive operation.
    """
    pattern = validate_pattern(body.pattern)
    report = await cache.invalidate_patterns([InvalidationTarget(pattern, body.bucket)])
    logger.info(f"Manual cache invalidation {body.bucket}:{pattern}: {report.total_deleted} keys")

    return InvalidationResult(
        pattern=pattern,
        bucket=body.bucket,
        deleted_count=report.total_deleted,
        failed=report.failed,
        enabled=cache.enabled,
        timestamp=datetime.now(UTC),
    )


@router.get("/ttl")
async def ttl_policy(cache: CacheDep) -> dict[str, int]:
    """Bucket TTLs in seconds, with configured overrides applied."""
    return cache.ttl_policy.as_dict()
