"""Tests for the cache-aside service."""

import asyncio
from collections.abc import Iterable
from typing import Any

import pytest
from prometheus_client import REGISTRY
from pydantic import BaseModel
from redis.exceptions import ConnectionError as RedisConnectionError

from panpal.cache.keys import CacheKeys
from panpal.cache.memory import MemoryStore
from panpal.cache.service import CacheAsideService, InvalidationTarget
from panpal.cache.ttl import CacheBucket


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FailingStore(MemoryStore):
    """Every operation fails like an unreachable Redis."""

    name = "failing"

    async def get(self, key: str) -> bytes | None:
        raise RedisConnectionError("connection refused")

    async def set(self, key: str, value: bytes, ttl_ms: int) -> None:
        raise RedisConnectionError("connection refused")

    async def delete(self, key: str) -> bool:
        raise RedisConnectionError("connection refused")

    async def scan_keys(self, pattern: str) -> list[str]:
        raise RedisConnectionError("connection refused")

    async def delete_many(self, keys: Iterable[str]) -> int:
        raise RedisConnectionError("connection refused")

    async def ping(self) -> bool:
        raise RedisConnectionError("connection refused")


class PartiallyFailingStore(MemoryStore):
    """SCAN fails for patterns in one bucket only."""

    def __init__(self, failing_prefix: str) -> None:
        super().__init__()
        self.failing_prefix = failing_prefix

    async def scan_keys(self, pattern: str) -> list[str]:
        if pattern.startswith(self.failing_prefix):
            raise RedisConnectionError("connection reset")
        return await super().scan_keys(pattern)


class GatedStore(MemoryStore):
    """Holds writes until released."""

    def __init__(self) -> None:
        super().__init__()
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def set(self, key: str, value: bytes, ttl_ms: int) -> None:
        self.started.set()
        await self.release.wait()
        await super().set(key, value, ttl_ms)


class CountingFetcher:
    def __init__(self, value: Any) -> None:
        self.value = value
        self.calls = 0

    async def __call__(self) -> Any:
        self.calls += 1
        return self.value


def _sample(name: str, labels: dict[str, str]) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestGetSet:
    """Test plain get / set / delete."""

    @pytest.mark.asyncio
    async def test_round_trip(self) -> None:
        cache = CacheAsideService(MemoryStore())
        assert await cache.set("recipe:1", {"title": "Soup"}) is True
        assert await cache.get("recipe:1") == {"title": "Soup"}

    @pytest.mark.asyncio
    async def test_missing_key(self) -> None:
        cache = CacheAsideService(MemoryStore())
        assert await cache.get("recipe:404") is None

    @pytest.mark.asyncio
    async def test_keys_are_bucket_prefixed(self) -> None:
        store = MemoryStore()
        cache = CacheAsideService(store)
        await cache.set("recipe:1", 1, bucket=CacheBucket.RECIPES)
        assert await store.get("recipes:recipe:1") == b"1"
        assert await cache.get("recipe:1") is None

    @pytest.mark.asyncio
    async def test_pydantic_values_are_serialized(self) -> None:
        class Item(BaseModel):
            id: str
            score: float

        cache = CacheAsideService(MemoryStore())
        await cache.set("item", Item(id="a", score=4.5))
        assert await cache.get("item") == {"id": "a", "score": 4.5}

    @pytest.mark.asyncio
    async def test_unserializable_value_is_skipped(self) -> None:
        cache = CacheAsideService(MemoryStore())
        assert await cache.set("bad", object()) is False
        assert await cache.get("bad") is None

    @pytest.mark.asyncio
    async def test_invalid_ttl_is_skipped(self) -> None:
        cache = CacheAsideService(MemoryStore())
        assert await cache.set("k", 1, ttl=0) is False

    @pytest.mark.asyncio
    async def test_corrupt_entry_is_a_miss(self) -> None:
        store = MemoryStore()
        await store.set("default:k", b"{not json", 1000)
        cache = CacheAsideService(store)
        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_delete(self) -> None:
        cache = CacheAsideService(MemoryStore())
        await cache.set("k", 1)
        assert await cache.delete("k") is True
        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_hit_and_miss_metrics(self) -> None:
        cache = CacheAsideService(MemoryStore())
        bucket = "metrics-test"
        hits = _sample("panpal_cache_hits_total", {"bucket": bucket})
        misses = _sample("panpal_cache_misses_total", {"bucket": bucket})

        await cache.get("k", bucket=bucket)
        await cache.set("k", 1, bucket=bucket)
        await cache.get("k", bucket=bucket)

        assert _sample("panpal_cache_hits_total", {"bucket": bucket}) == hits + 1
        assert _sample("panpal_cache_misses_total", {"bucket": bucket}) == misses + 1


class TestTTL:
    """Test expiry."""

    @pytest.mark.asyncio
    async def test_explicit_ttl_expires(self) -> None:
        clock = FakeClock()
        cache = CacheAsideService(MemoryStore(clock=clock))
        await cache.set("k", "v", ttl=10)

        clock.advance(9.9)
        assert await cache.get("k") == "v"
        clock.advance(0.2)
        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_bucket_default_ttl(self) -> None:
        """Without an explicit TTL the bucket default applies."""
        clock = FakeClock()
        cache = CacheAsideService(MemoryStore(clock=clock))
        await cache.set("recipes:trending:24h", [], bucket=CacheBucket.TRENDING)

        clock.advance(1799)
        assert await cache.get("recipes:trending:24h", bucket=CacheBucket.TRENDING) == []
        clock.advance(2)
        assert await cache.get("recipes:trending:24h", bucket=CacheBucket.TRENDING) is None

    @pytest.mark.asyncio
    async def test_get_or_set_refetches_after_expiry(self) -> None:
        clock = FakeClock()
        cache = CacheAsideService(MemoryStore(clock=clock))
        fetcher = CountingFetcher({"n": 1})

        await cache.get_or_set("k", fetcher, ttl=5)
        await cache.get_or_set("k", fetcher, ttl=5)
        clock.advance(6)
        await cache.get_or_set("k", fetcher, ttl=5)

        assert fetcher.calls == 2


class TestGetOrSet:
    """Test read-through behavior."""

    @pytest.mark.asyncio
    async def test_fetches_once_then_hits(self) -> None:
        cache = CacheAsideService(MemoryStore())
        fetcher = CountingFetcher({"items": [1, 2]})

        first = await cache.get_or_set("recipes:list::::1:10", fetcher)
        second = await cache.get_or_set("recipes:list::::1:10", fetcher)

        assert first == second == {"items": [1, 2]}
        assert fetcher.calls == 1

    @pytest.mark.asyncio
    async def test_cached_null_is_a_hit(self) -> None:
        cache = CacheAsideService(MemoryStore())
        fetcher = CountingFetcher(None)

        assert await cache.get_or_set("k", fetcher) is None
        assert await cache.get_or_set("k", fetcher) is None
        assert fetcher.calls == 1

    @pytest.mark.asyncio
    async def test_fetcher_error_propagates_unchanged(self) -> None:
        """The same exception object reaches the caller and nothing is cached."""
        store = MemoryStore()
        cache = CacheAsideService(store)
        error = LookupError("recipe 42 not found")
        calls = 0

        async def fetcher() -> Any:
            nonlocal calls
            calls += 1
            raise error

        with pytest.raises(LookupError) as exc_info:
            await cache.get_or_set("recipe:42", fetcher)

        assert exc_info.value is error
        assert calls == 1
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_concurrent_cold_misses_each_fetch(self) -> None:
        """No single-flight: two concurrent misses both run the fetcher."""
        cache = CacheAsideService(MemoryStore())
        gate = asyncio.Event()
        calls = 0

        async def fetcher() -> str:
            nonlocal calls
            calls += 1
            await gate.wait()
            return "value"

        tasks = [asyncio.ensure_future(cache.get_or_set("cold", fetcher)) for _ in range(2)]
        while calls < 2:
            await asyncio.sleep(0)
        gate.set()

        assert await asyncio.gather(*tasks) == ["value", "value"]
        assert calls == 2

    @pytest.mark.asyncio
    async def test_write_survives_caller_cancellation(self) -> None:
        store = GatedStore()
        cache = CacheAsideService(store)

        task = asyncio.ensure_future(cache.get_or_set("k", CountingFetcher("v")))
        await store.started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        store.release.set()
        await cache.drain()
        assert await store.get("default:k") == b'"v"'

    @pytest.mark.asyncio
    async def test_unserializable_result_still_returned(self) -> None:
        cache = CacheAsideService(MemoryStore())
        value = object()
        fetcher = CountingFetcher(value)

        assert await cache.get_or_set("k", fetcher) is value
        assert await cache.get_or_set("k", fetcher) is value
        assert fetcher.calls == 2


class TestDegradation:
    """Store failures never reach the caller."""

    @pytest.mark.asyncio
    async def test_get_returns_none(self) -> None:
        cache = CacheAsideService(FailingStore())
        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_set_and_delete_are_no_ops(self) -> None:
        cache = CacheAsideService(FailingStore())
        assert await cache.set("k", 1) is False
        assert await cache.delete("k") is False

    @pytest.mark.asyncio
    async def test_get_or_set_falls_through(self) -> None:
        cache = CacheAsideService(FailingStore())
        fetcher = CountingFetcher({"id": "42"})

        assert await cache.get_or_set("recipe:42", fetcher) == {"id": "42"}
        assert await cache.get_or_set("recipe:42", fetcher) == {"id": "42"}
        assert fetcher.calls == 2

    @pytest.mark.asyncio
    async def test_invalidation_reports_zero(self) -> None:
        cache = CacheAsideService(FailingStore())
        assert await cache.invalidate_pattern("recipes:list:*") == 0

    @pytest.mark.asyncio
    async def test_errors_are_counted(self) -> None:
        cache = CacheAsideService(FailingStore())
        before = _sample("panpal_cache_errors_total", {"operation": "get"})
        await cache.get("k")
        assert _sample("panpal_cache_errors_total", {"operation": "get"}) == before + 1

    @pytest.mark.asyncio
    async def test_health_check(self) -> None:
        assert await CacheAsideService(FailingStore()).health_check() is False
        assert await CacheAsideService(MemoryStore()).health_check() is True


class TestDisabled:
    """A disabled service is a pass-through."""

    @pytest.mark.asyncio
    async def test_pass_through(self) -> None:
        store = MemoryStore()
        cache = CacheAsideService(store, enabled=False)
        fetcher = CountingFetcher("fresh")

        assert await cache.set("k", 1) is False
        assert await cache.get("k") is None
        assert await cache.get_or_set("k", fetcher) == "fresh"
        assert await cache.get_or_set("k", fetcher) == "fresh"
        assert fetcher.calls == 2
        assert await cache.invalidate_pattern("*") == 0
        assert len(store) == 0


class TestInvalidation:
    """Test pattern invalidation."""

    @pytest.mark.asyncio
    async def test_recipe_42_scenario(self) -> None:
        """Set, read, invalidate by pattern, read again."""
        cache = CacheAsideService(MemoryStore())
        detail = CacheKeys.recipe_detail("42")
        viewer_detail = CacheKeys.recipe_detail("42", "u1")
        await cache.set(detail, {"id": "42"}, bucket=CacheBucket.RECIPES)
        viewer_value = {"id": "42", "is_favorite": True}
        await cache.set(viewer_detail, viewer_value, bucket=CacheBucket.RECIPES)
        await cache.set(CacheKeys.recipe_detail("7"), {"id": "7"}, bucket=CacheBucket.RECIPES)

        assert await cache.get(detail, bucket=CacheBucket.RECIPES) == {"id": "42"}

        deleted = await cache.invalidate_pattern(
            CacheKeys.recipe_pattern("42"), bucket=CacheBucket.RECIPES
        )

        assert deleted == 2
        assert await cache.get(detail, bucket=CacheBucket.RECIPES) is None
        assert await cache.get(viewer_detail, bucket=CacheBucket.RECIPES) is None
        assert await cache.get(CacheKeys.recipe_detail("7"), bucket=CacheBucket.RECIPES) == {
            "id": "7"
        }

    @pytest.mark.asyncio
    async def test_list_pattern_removes_every_page(self) -> None:
        cache = CacheAsideService(MemoryStore())
        for page in range(1, 4):
            await cache.set(CacheKeys.recipe_list(page=page), [], bucket=CacheBucket.RECIPES)

        assert await cache.invalidate_pattern("recipes:list:*", CacheBucket.RECIPES) == 3

    @pytest.mark.asyncio
    async def test_buckets_are_isolated(self) -> None:
        cache = CacheAsideService(MemoryStore())
        key = CacheKeys.recipe_list(search="soup")
        await cache.set(key, ["recipes"], bucket=CacheBucket.RECIPES)
        await cache.set(key, ["search"], bucket=CacheBucket.SEARCH)

        await cache.invalidate_pattern(CacheKeys.recipe_list_pattern(), CacheBucket.SEARCH)

        assert await cache.get(key, bucket=CacheBucket.RECIPES) == ["recipes"]
        assert await cache.get(key, bucket=CacheBucket.SEARCH) is None

    @pytest.mark.asyncio
    async def test_no_matches(self) -> None:
        cache = CacheAsideService(MemoryStore())
        assert await cache.invalidate_pattern("recipe:1*") == 0

    @pytest.mark.asyncio
    async def test_failures_are_isolated_per_target(self) -> None:
        store = PartiallyFailingStore(failing_prefix="search:")
        cache = CacheAsideService(store)
        await cache.set("recipes:list::::1:10", [], bucket=CacheBucket.RECIPES)
        await cache.set("recipes:trending:24h", [], bucket=CacheBucket.TRENDING)

        report = await cache.invalidate_patterns(
            [
                InvalidationTarget("recipes:list:*", CacheBucket.SEARCH),
                InvalidationTarget("recipes:list:*", CacheBucket.RECIPES),
                InvalidationTarget("recipes:trending:*", CacheBucket.TRENDING),
            ]
        )

        assert report.failed == ["search:recipes:list:*"]
        assert report.deleted == {"recipes:recipes:list:*": 1, "trending:recipes:trending:*": 1}
        assert report.total_deleted == 2
        assert report.ok is False

    @pytest.mark.asyncio
    async def test_duplicate_targets_run_once(self) -> None:
        cache = CacheAsideService(MemoryStore())
        target = InvalidationTarget("recipes:list:*", CacheBucket.RECIPES)
        report = await cache.invalidate_patterns([target, target])
        assert list(report.deleted) == ["recipes:recipes:list:*"]

    @pytest.mark.asyncio
    async def test_report_to_dict(self) -> None:
        cache = CacheAsideService(MemoryStore())
        await cache.set("recipe:1", 1, bucket=CacheBucket.RECIPES)
        report = await cache.invalidate_patterns(
            [InvalidationTarget("*recipe:1*", CacheBucket.RECIPES)]
        )
        assert report.to_dict() == {
            "deleted": {"recipes:*recipe:1*": 1},
            "failed": [],
            "total_deleted": 1,
        }
