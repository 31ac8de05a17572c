"""Cache-aside service.

Read-through caching and explicit invalidation on top of a KeyValueStore.
The cache is a performance optimization, never a correctness dependency:
- store and serialization failures degrade to a miss / no-op and are logged
- fetcher failures propagate to the caller unchanged
- pattern invalidation deletes matching keys explicitly (SCAN + DEL)

Concurrent misses on the same cold key each run the fetcher; there is no
single-flight coalescing.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, TypeVar

import orjson
from pydantic import BaseModel

from panpal.cache.backends import KeyValueStore
from panpal.cache.keys import CacheKeys
from panpal.cache.ttl import CacheBucket, TTLPolicy
from panpal.observability.metrics import (
    record_cache_error,
    record_cache_hit,
    record_cache_invalidation,
    record_cache_miss,
    record_cache_operation,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Distinguishes "absent" from a cached JSON null
_MISSING: Any = object()


def _default(obj: Any) -> Any:
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    raise TypeError(f"Type is not JSON serializable: {type(obj).__name__}")


def encode_value(value: Any) -> bytes:
    """Serialize a cache value to JSON bytes."""
    return orjson.dumps(value, default=_default)


def decode_value(data: bytes) -> Any:
    """Deserialize JSON bytes read from the store."""
    return orjson.loads(data)


@dataclass(frozen=True)
class InvalidationTarget:
    """A glob pattern scoped to a bucket."""

    pattern: str
    bucket: str = CacheBucket.DEFAULT

    def __str__(self) -> str:
        return CacheKeys.full_key(self.bucket, self.pattern)


@dataclass
class InvalidationReport:
    """Outcome of a batch of pattern invalidations."""

    deleted: dict[str, int] = field(default_factory=dict)
    failed: list[str] = field(default_factory=list)

    @property
    def total_deleted(self) -> int:
        return sum(self.deleted.values())

    @property
    def ok(self) -> bool:
        return not self.failed

    def to_dict(self) -> dict[str, Any]:
        return {
            "deleted": dict(self.deleted),
            "failed": list(self.failed),
            "total_deleted": self.total_deleted,
        }


class CacheAsideService:
    """get / set / get_or_set / invalidate_pattern over a KeyValueStore.

    Args:
        store: Backend implementing the KeyValueStore capability
        enabled: When False every operation is a pass-through no-op
        ttl_policy: Bucket default TTLs; built-in defaults when omitted
        default_bucket: Bucket used when a call passes none
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        enabled: bool = True,
        ttl_policy: TTLPolicy | None = None,
        default_bucket: str = CacheBucket.DEFAULT,
    ):
        self.store = store
        self.enabled = enabled
        self.ttl_policy = ttl_policy or TTLPolicy()
        self.default_bucket = default_bucket
        self._pending: set[asyncio.Future[Any]] = set()

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def _lookup(self, key: str, bucket: str) -> Any:
        """Read and decode a key, returning _MISSING on miss or failure."""
        full_key = CacheKeys.full_key(bucket, key)
        start = time.perf_counter()
        try:
            data = await self.store.get(full_key)
        except Exception as e:
            logger.warning(f"Cache get failed for {full_key}: {e!r}")
            record_cache_error("get")
            return _MISSING
        finally:
            record_cache_operation("get", time.perf_counter() - start)

        if data is None:
            logger.debug(f"Cache MISS: {full_key}")
            record_cache_miss(bucket)
            return _MISSING

        try:
            value = decode_value(data)
        except orjson.JSONDecodeError as e:
            logger.warning(f"Cache entry {full_key} is not decodable, treating as miss: {e}")
            record_cache_error("decode")
            record_cache_miss(bucket)
            return _MISSING

        logger.debug(f"Cache HIT: {full_key}")
        record_cache_hit(bucket)
        return value

    async def get(self, key: str, bucket: str | None = None) -> Any | None:
        """Get a cached value, or None when absent or the cache is unavailable."""
        if not self.enabled:
            return None
        value = await self._lookup(key, bucket or self.default_bucket)
        return None if value is _MISSING else value

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def set(
        self,
        key: str,
        value: Any,
        ttl: int | None = None,
        bucket: str | None = None,
    ) -> bool:
        """Cache a value with a TTL in seconds.

        The bucket default TTL applies when ttl is None. Returns False when
        the value was not written; never raises.
        """
        if not self.enabled:
            return False

        bucket = bucket or self.default_bucket
        full_key = CacheKeys.full_key(bucket, key)
        try:
            ttl_seconds = self.ttl_policy.resolve(bucket, ttl)
            payload = encode_value(value)
        except (TypeError, ValueError) as e:
            logger.warning(f"Cache set skipped for {full_key}: {e}")
            record_cache_error("encode")
            return False

        start = time.perf_counter()
        try:
            await self.store.set(full_key, payload, ttl_seconds * 1000)
        except Exception as e:
            logger.warning(f"Cache set failed for {full_key}: {e!r}")
            record_cache_error("set")
            return False
        finally:
            record_cache_operation("set", time.perf_counter() - start)

        logger.debug(f"Cache SET: {full_key} (TTL: {ttl_seconds}s)")
        return True

    async def delete(self, key: str, bucket: str | None = None) -> bool:
        """Delete one exact key. Returns True if it existed."""
        if not self.enabled:
            return False

        full_key = CacheKeys.full_key(bucket or self.default_bucket, key)
        try:
            existed = await self.store.delete(full_key)
        except Exception as e:
            logger.warning(f"Cache delete failed for {full_key}: {e!r}")
            record_cache_error("delete")
            return False

        logger.debug(f"Cache DEL: {full_key}")
        return existed

    # -------------------------------------------------------------------------
    # Read-through
    # -------------------------------------------------------------------------

    async def get_or_set(
        self,
        key: str,
        fetcher: Callable[[], Awaitable[T]],
        ttl: int | None = None,
        bucket: str | None = None,
    ) -> T:
        """Return the cached value, or fetch, cache and return it.

        The fetcher runs at most once per call. Its exceptions propagate
        unchanged. The cache write after a miss is best effort and survives
        cancellation of the caller.
        """
        if not self.enabled:
            return await fetcher()

        bucket = bucket or self.default_bucket
        try:
            cached = await self._lookup(key, bucket)
        except Exception as e:
            # Cache unavailability must never become an outage
            logger.warning(f"Cache lookup for {key} failed, fetching directly: {e!r}")
            record_cache_error("get_or_set")
            return await fetcher()

        if cached is not _MISSING:
            return cached  # type: ignore[no-any-return]

        logger.debug(f"Fetching data for cache key: {bucket}:{key}")
        value = await fetcher()
        await self._detached(self.set(key, value, ttl=ttl, bucket=bucket))
        return value

    # -------------------------------------------------------------------------
    # Invalidation
    # -------------------------------------------------------------------------

    async def _invalidate(self, target: InvalidationTarget) -> int:
        full_pattern = str(target)
        start = time.perf_counter()
        try:
            keys = await self.store.scan_keys(full_pattern)
            deleted = await self.store.delete_many(keys) if keys else 0
        finally:
            record_cache_operation("invalidate", time.perf_counter() - start)

        record_cache_invalidation(target.bucket, deleted)
        logger.info(f"Cache invalidation {full_pattern}: {deleted} keys deleted")
        return deleted

    async def invalidate_pattern(self, pattern: str, bucket: str | None = None) -> int:
        """Delete every key in a bucket matching a glob pattern.

        Returns the number of keys deleted. Failures are logged and reported
        as 0; the triggering write is never failed by invalidation.
        """
        if not self.enabled:
            return 0

        target = InvalidationTarget(pattern, bucket or self.default_bucket)
        try:
            return await self._detached(self._invalidate(target))
        except Exception as e:
            logger.error(f"Cache pattern invalidation failed for {target}: {e!r}")
            record_cache_error("invalidate")
            return 0

    async def invalidate_patterns(
        self, targets: Iterable[InvalidationTarget]
    ) -> InvalidationReport:
        """Invalidate several targets, each attempted independently."""
        report = InvalidationReport()
        if not self.enabled:
            return report

        for target in dict.fromkeys(targets):
            try:
                report.deleted[str(target)] = await self._detached(self._invalidate(target))
            except Exception as e:
                logger.error(f"Cache pattern invalidation failed for {target}: {e!r}")
                record_cache_error("invalidate")
                report.failed.append(str(target))

        return report

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def _detached(self, awaitable: Awaitable[T]) -> T:
        """Run an awaitable that keeps going if the caller is cancelled."""
        task = asyncio.ensure_future(awaitable)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return await asyncio.shield(task)

    async def drain(self) -> None:
        """Wait for detached cache writes and invalidations to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def health_check(self) -> bool:
        """Check store connectivity."""
        try:
            return await self.store.ping()
        except Exception:
            return False
