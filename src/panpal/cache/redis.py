"""Redis backend for the cache-aside layer.

Uses the redis-py async client with its own connection pool. Transient
connection errors are retried a bounded number of times with exponential
backoff; after that the error surfaces to the caller instead of retrying
forever.
"""

from __future__ import annotations

from collections.abc import Awaitable, Iterable
from typing import TYPE_CHECKING, cast

import redis.asyncio as redis
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError
from redis.retry import Retry

if TYPE_CHECKING:
    from redis.asyncio import Redis

# Keys per DEL command during bulk invalidation
DELETE_CHUNK_SIZE = 500


def create_redis_client(
    url: str,
    *,
    password: str | None = None,
    max_retries: int = 3,
    backoff_cap: float = 3.0,
    socket_timeout: float = 2.0,
) -> Redis:
    """Create a Redis client with bounded reconnect retry.

    The client is lazy: no connection is opened until the first command.
    """
    return redis.from_url(  # type: ignore[no-untyped-call]
        url,
        password=password,
        decode_responses=False,  # We're storing bytes
        socket_timeout=socket_timeout,
        socket_connect_timeout=socket_timeout,
        retry=Retry(ExponentialBackoff(cap=backoff_cap, base=0.1), max_retries),
        retry_on_error=[RedisConnectionError, RedisTimeoutError],
    )


class RedisStore:
    """KeyValueStore implementation over redis.asyncio."""

    name = "redis"

    def __init__(self, client: Redis, scan_count: int = 500):
        self.client = client
        self.scan_count = scan_count

    async def get(self, key: str) -> bytes | None:
        return cast(bytes | None, await self.client.get(key))

    async def set(self, key: str, value: bytes, ttl_ms: int) -> None:
        await self.client.set(key, value, px=ttl_ms)

    async def delete(self, key: str) -> bool:
        return bool(await self.client.delete(key))

    async def scan_keys(self, pattern: str) -> list[str]:
        """Enumerate keys matching a glob pattern.

        Uses SCAN to avoid blocking on large keyspaces. SCAN may return a key
        more than once, so results are de-duplicated.
        """
        found: dict[str, None] = {}
        async for key in self.client.scan_iter(match=pattern, count=self.scan_count):
            found[key.decode() if isinstance(key, bytes) else key] = None
        return list(found)

    async def delete_many(self, keys: Iterable[str]) -> int:
        batch = list(keys)
        deleted = 0
        for start in range(0, len(batch), DELETE_CHUNK_SIZE):
            chunk = batch[start : start + DELETE_CHUNK_SIZE]
            deleted += cast(int, await self.client.delete(*chunk))
        return deleted

    async def ping(self) -> bool:
        return bool(await cast(Awaitable[bool], self.client.ping()))

    async def close(self) -> None:
        await self.client.aclose()
