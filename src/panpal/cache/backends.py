"""Key-value store capability consumed by the cache-aside service.

Any backend offering exact-key reads/writes/deletes plus a glob enumeration
primitive can sit behind CacheAsideService. Production uses RedisStore,
tests and single-process deployments use MemoryStore.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol, runtime_checkable


@runtime_checkable
class KeyValueStore(Protocol):
    """Structural interface for cache backends.

    Keys passed here are fully qualified ("bucket:logical_key").
    Implementations raise on transport failure; the cache-aside service
    decides how failures are handled.
    """

    name: str

    async def get(self, key: str) -> bytes | None:
        """Return the stored bytes, or None when absent or expired."""
        ...

    async def set(self, key: str, value: bytes, ttl_ms: int) -> None:
        """Store bytes with an expiry in milliseconds."""
        ...

    async def delete(self, key: str) -> bool:
        """Delete one key. Returns True if it existed."""
        ...

    async def scan_keys(self, pattern: str) -> list[str]:
        """Return every live key matching a glob pattern."""
        ...

    async def delete_many(self, keys: Iterable[str]) -> int:
        """Delete the given keys. Returns how many existed."""
        ...

    async def ping(self) -> bool:
        """Check connectivity."""
        ...

    async def close(self) -> None:
        """Release connections."""
        ...
