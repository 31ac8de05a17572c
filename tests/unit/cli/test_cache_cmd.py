"""Tests for the cache CLI commands."""

import pytest
from typer.testing import CliRunner

from panpal.cache import CacheAsideService, MemoryStore
from panpal.cli import app

runner = CliRunner()


@pytest.fixture
def populated_cache(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_init_cache(settings, store=None) -> CacheAsideService:
        cache = CacheAsideService(MemoryStore())
        await cache.set("recipe:42", {"id": "42"}, bucket="recipes")
        await cache.set("recipe:42:user:u1", {"id": "42"}, bucket="recipes")
        await cache.set("recipe:7", {"id": "7"}, bucket="recipes")
        return cache

    monkeypatch.setattr("panpal.cli.cache_cmd.init_cache", fake_init_cache)


class TestInvalidateCommand:
    """Test `panpal cache invalidate`."""

    def test_deletes_matching_keys(self, populated_cache: None) -> None:
        result = runner.invoke(app, ["cache", "invalidate", "*recipe:42*", "--bucket", "recipes"])
        assert result.exit_code == 0
        assert "Deleted 2 keys matching recipes:*recipe:42*" in result.output

    def test_rejects_match_all(self) -> None:
        result = runner.invoke(app, ["cache", "invalidate", "*"])
        assert result.exit_code == 2

    def test_rejects_bad_bucket(self) -> None:
        result = runner.invoke(app, ["cache", "invalidate", "recipe:1*", "--bucket", "a:b"])
        assert result.exit_code == 2

    def test_disabled_cache(self, monkeypatch: pytest.MonkeyPatch) -> None:
        async def disabled_cache(settings, store=None) -> CacheAsideService:
            return CacheAsideService(MemoryStore(), enabled=False)

        monkeypatch.setattr("panpal.cli.cache_cmd.init_cache", disabled_cache)
        result = runner.invoke(app, ["cache", "invalidate", "recipe:1*"])
        assert result.exit_code == 1


class TestTtlCommand:
    """Test `panpal cache ttl`."""

    def test_lists_buckets(self) -> None:
        result = runner.invoke(app, ["cache", "ttl"])
        assert result.exit_code == 0
        assert "trending" in result.output
        assert "1800s" in result.output
