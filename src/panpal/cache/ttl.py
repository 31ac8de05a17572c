"""TTL policy for cached key families.

TTLs bound staleness for entries nobody explicitly invalidates; they are not
the consistency mechanism for writes (see CacheInvalidator).
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Final


class CacheTTL:
    """Default TTL (seconds) per key family."""

    RECIPE_LIST: Final[int] = 300
    RECIPE_DETAIL: Final[int] = 900
    RECIPE_RATINGS: Final[int] = 600
    USER_FAVORITES: Final[int] = 300
    TRENDING: Final[int] = 1800
    SEARCH_RESULTS: Final[int] = 180


class CacheBucket:
    """Bucket names grouping related key families."""

    DEFAULT: Final[str] = "default"
    RECIPES: Final[str] = "recipes"
    SEARCH: Final[str] = "search"
    RATINGS: Final[str] = "ratings"
    FAVORITES: Final[str] = "favorites"
    TRENDING: Final[str] = "trending"


BUCKET_DEFAULT_TTL: Final[Mapping[str, int]] = MappingProxyType(
    {
        CacheBucket.DEFAULT: 300,
        CacheBucket.RECIPES: CacheTTL.RECIPE_LIST,
        CacheBucket.SEARCH: CacheTTL.SEARCH_RESULTS,
        CacheBucket.RATINGS: CacheTTL.RECIPE_RATINGS,
        CacheBucket.FAVORITES: CacheTTL.USER_FAVORITES,
        CacheBucket.TRENDING: CacheTTL.TRENDING,
    }
)


class TTLPolicy:
    """Resolves the TTL for a write.

    Precedence: explicit per-call TTL, configured bucket override, built-in
    bucket default, global fallback.
    """

    def __init__(
        self,
        overrides: Mapping[str, int] | None = None,
        fallback: int = BUCKET_DEFAULT_TTL[CacheBucket.DEFAULT],
    ) -> None:
        self.fallback = _validate("fallback", fallback)
        self._table = dict(BUCKET_DEFAULT_TTL)
        for bucket, ttl in (overrides or {}).items():
            self._table[bucket] = _validate(bucket, ttl)

    def for_bucket(self, bucket: str) -> int:
        """Default TTL for writes into a bucket."""
        return self._table.get(bucket, self.fallback)

    def resolve(self, bucket: str, ttl: int | None = None) -> int:
        """TTL to apply to a write, honoring an explicit per-call value."""
        if ttl is not None:
            return _validate(bucket, ttl)
        return self.for_bucket(bucket)

    def as_dict(self) -> dict[str, int]:
        return dict(self._table)


def _validate(name: str, ttl: int) -> int:
    if isinstance(ttl, bool) or not isinstance(ttl, int) or ttl <= 0:
        raise ValueError(f"TTL for {name!r} must be a positive number of seconds, got {ttl!r}")
    return ttl
