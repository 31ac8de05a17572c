"""Cache lifecycle: explicit construction at startup, teardown at shutdown.

The application factory calls init_cache() once and keeps the returned
service on app.state; nothing here is a module-level singleton.
"""

from __future__ import annotations

import logging

from redis.exceptions import RedisError

from panpal.cache.backends import KeyValueStore
from panpal.cache.memory import MemoryStore
from panpal.cache.redis import RedisStore, create_redis_client
from panpal.cache.service import CacheAsideService
from panpal.cache.ttl import TTLPolicy
from panpal.config import Settings

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> KeyValueStore:
    """Create the configured backend without connecting."""
    if settings.cache_backend == "memory":
        return MemoryStore()
    client = create_redis_client(
        settings.redis_url,
        password=settings.redis_password,
        max_retries=settings.redis_max_retries,
        backoff_cap=settings.redis_retry_backoff_cap,
        socket_timeout=settings.redis_socket_timeout,
    )
    return RedisStore(client, scan_count=settings.cache_scan_count)


async def init_cache(
    settings: Settings, store: KeyValueStore | None = None
) -> CacheAsideService:
    """Connect the cache and return the service.

    If the store cannot be reached after its bounded retries, the service is
    returned disabled so reads fall through to the database.
    """
    if store is None:
        store = build_store(settings)
    ttl_policy = TTLPolicy(settings.cache_ttl_overrides, fallback=settings.cache_default_ttl)

    if not settings.cache_enabled:
        logger.info("Cache disabled by configuration")
        return CacheAsideService(store, enabled=False, ttl_policy=ttl_policy)

    try:
        reachable = await store.ping()
    except (RedisError, OSError) as e:
        logger.warning(f"Cache store {store.name} unreachable, running without cache: {e!r}")
        reachable = False

    if reachable:
        logger.info(f"Cache connected ({store.name})")

    return CacheAsideService(store, enabled=reachable, ttl_policy=ttl_policy)


async def close_cache(cache: CacheAsideService) -> None:
    """Let in-flight cache work finish, then release the store."""
    await cache.drain()
    try:
        await cache.store.close()
    except (RedisError, OSError) as e:
        logger.warning(f"Error closing cache store: {e!r}")
    logger.info("Cache closed")
