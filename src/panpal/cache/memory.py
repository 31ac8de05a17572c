"""In-process key-value store.

Mirrors the Redis semantics the cache relies on: per-key expiry enforced on
read, glob matching for SCAN, exact-key deletes. The clock is injectable so
TTL expiry can be tested without sleeping.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Iterable
from fnmatch import fnmatchcase


class MemoryStore:
    """Dictionary-backed store with millisecond expiry."""

    name = "memory"

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._data: dict[str, tuple[bytes, float]] = {}
        self._lock = asyncio.Lock()

    def _alive(self, key: str) -> bool:
        entry = self._data.get(key)
        if entry is None:
            return False
        if entry[1] <= self._clock():
            del self._data[key]
            return False
        return True

    async def get(self, key: str) -> bytes | None:
        async with self._lock:
            if not self._alive(key):
                return None
            return self._data[key][0]

    async def set(self, key: str, value: bytes, ttl_ms: int) -> None:
        if ttl_ms <= 0:
            raise ValueError("ttl_ms must be positive")
        async with self._lock:
            self._data[key] = (value, self._clock() + ttl_ms / 1000)

    async def delete(self, key: str) -> bool:
        async with self._lock:
            existed = self._alive(key)
            self._data.pop(key, None)
            return existed

    async def scan_keys(self, pattern: str) -> list[str]:
        async with self._lock:
            return [
                key for key in list(self._data) if fnmatchcase(key, pattern) and self._alive(key)
            ]

    async def delete_many(self, keys: Iterable[str]) -> int:
        deleted = 0
        async with self._lock:
            for key in keys:
                if self._alive(key):
                    deleted += 1
                self._data.pop(key, None)
        return deleted

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        async with self._lock:
            self._data.clear()

    def __len__(self) -> int:
        return sum(1 for key in list(self._data) if self._alive(key))
