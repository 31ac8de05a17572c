"""Tests for Prometheus metrics helpers."""

from prometheus_client import REGISTRY

from panpal.observability.metrics import (
    MetricsMiddleware,
    get_metrics,
    record_cache_invalidation,
)


class TestMetricsRegistry:
    """Test registry initialization."""

    def test_singleton(self) -> None:
        assert get_metrics() is get_metrics()

    def test_exposition(self) -> None:
        assert b"panpal_cache_hits_total" in get_metrics().generate_latest()

    def test_invalidation_counter(self) -> None:
        labels = {"bucket": "metrics-invalidation"}
        before = REGISTRY.get_sample_value("panpal_cache_invalidated_keys_total", labels) or 0.0
        record_cache_invalidation("metrics-invalidation", 3)
        after = REGISTRY.get_sample_value("panpal_cache_invalidated_keys_total", labels)
        assert after == before + 3


class TestPathNormalization:
    """Test path label cardinality control."""

    def _normalize(self, path: str) -> str:
        return MetricsMiddleware._normalize_path(None, path)  # type: ignore[arg-type]

    def test_recipe_ids_replaced(self) -> None:
        assert self._normalize("/recipes/abc123") == "/recipes/{id}"
        assert self._normalize("/recipes/abc123/ratings") == "/recipes/{id}/ratings"

    def test_static_paths_kept(self) -> None:
        assert self._normalize("/recipes") == "/recipes"
        assert self._normalize("/recipes/trending") == "/recipes/trending"
        assert self._normalize("/users/me/favorites") == "/users/me/favorites"
