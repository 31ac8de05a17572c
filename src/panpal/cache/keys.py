"""Cache key schema for PanPal.

Fully-qualified key format: {bucket}:{logical_key}

Logical key families:
- recipes:list:{category}:{search_b64}:{user_id}:{page}:{limit}
- recipe:{recipe_id}[:user:{user_id}]
- recipe:ratings:{recipe_id}[:{page}:{limit}]
- user:favorites:{user_id}:{page}:{limit}
- recipes:trending:{timeframe}

Absent optional selectors keep their position as an empty segment, so two
different selector tuples can never render to the same key. Free-text search
terms are Base64URL encoded; identifier selectors are validated instead.
"""

from __future__ import annotations

import base64
import re
from typing import Final

SEPARATOR: Final[str] = ":"

# Glob metacharacters understood by Redis SCAN MATCH, plus the separator
_FORBIDDEN = re.compile(r"[:*?\[\]\\]")


class InvalidKeyComponentError(ValueError):
    """A selector cannot be embedded in a cache key."""


def encode_search(text: str) -> str:
    """Normalize a free-text search term and encode it as unpadded Base64URL."""
    normalized = " ".join(text.split()).lower()
    raw = normalized.encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _component(name: str, value: str) -> str:
    if not value:
        raise InvalidKeyComponentError(f"{name} must not be empty")
    if _FORBIDDEN.search(value):
        raise InvalidKeyComponentError(f"{name} contains a reserved character: {value!r}")
    return value


def _optional(name: str, value: str | None) -> str:
    if value is None or value == "":
        return ""
    return _component(name, value)


def _positive(name: str, value: int) -> str:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise InvalidKeyComponentError(f"{name} must be a positive integer, got {value!r}")
    return str(value)


class CacheKeys:
    """Cache key generator following a consistent naming convention."""

    DEFAULT_BUCKET = "default"

    @classmethod
    def full_key(cls, bucket: str | None, key: str) -> str:
        """Prefix a logical key (or pattern) with its bucket."""
        return f"{_component('bucket', bucket or cls.DEFAULT_BUCKET)}{SEPARATOR}{key}"

    # -------------------------------------------------------------------------
    # Exact keys
    # -------------------------------------------------------------------------

    @classmethod
    def recipe_list(
        cls,
        category: str | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = 10,
        user_id: str | None = None,
    ) -> str:
        """Key for a filtered, paginated recipe list."""
        search_part = encode_search(search) if search and search.strip() else ""
        return SEPARATOR.join(
            [
                "recipes",
                "list",
                _optional("category", category),
                search_part,
                _optional("user_id", user_id),
                _positive("page", page),
                _positive("limit", limit),
            ]
        )

    @classmethod
    def recipe_detail(cls, recipe_id: str, user_id: str | None = None) -> str:
        """Key for a single recipe, optionally scoped to the viewer."""
        key = f"recipe:{_component('recipe_id', recipe_id)}"
        if user_id:
            key += f":user:{_component('user_id', user_id)}"
        return key

    @classmethod
    def recipe_ratings(
        cls, recipe_id: str, page: int | None = None, limit: int | None = None
    ) -> str:
        """Key for the rating/comment aggregate of one recipe."""
        key = f"recipe:ratings:{_component('recipe_id', recipe_id)}"
        if page is not None or limit is not None:
            page = 1 if page is None else page
            limit = 10 if limit is None else limit
            key += f":{_positive('page', page)}:{_positive('limit', limit)}"
        return key

    @classmethod
    def user_favorites(cls, user_id: str, page: int = 1, limit: int = 10) -> str:
        """Key for one page of a user's favorites."""
        return (
            f"user:favorites:{_component('user_id', user_id)}"
            f":{_positive('page', page)}:{_positive('limit', limit)}"
        )

    @classmethod
    def trending_recipes(cls, timeframe: str = "24h") -> str:
        """Key for the trending leaderboard of a timeframe."""
        return f"recipes:trending:{_component('timeframe', timeframe)}"

    # -------------------------------------------------------------------------
    # Invalidation patterns (glob, for SCAN MATCH)
    # -------------------------------------------------------------------------

    @classmethod
    def recipe_pattern(cls, recipe_id: str) -> str:
        """Every key mentioning a recipe: its detail and viewer-scoped variants."""
        return f"*recipe:{_component('recipe_id', recipe_id)}*"

    @classmethod
    def recipe_ratings_pattern(cls, recipe_id: str | None = None) -> str:
        """Rating aggregate pages of one recipe, or of every recipe when no id is given."""
        if recipe_id is None:
            return "recipe:ratings:*"
        return f"recipe:ratings:{_component('recipe_id', recipe_id)}*"

    @classmethod
    def user_pattern(cls, user_id: str) -> str:
        """Every key scoped to a user."""
        return f"*user:{_component('user_id', user_id)}*"

    @classmethod
    def recipe_list_pattern(cls) -> str:
        """All recipe list pages regardless of filters."""
        return "recipes:list:*"

    @classmethod
    def user_favorites_pattern(cls, user_id: str | None = None) -> str:
        """Favorites pages of one user, or of every user when no id is given."""
        if user_id is None:
            return "user:favorites:*"
        return f"user:favorites:{_component('user_id', user_id)}:*"

    @classmethod
    def trending_pattern(cls) -> str:
        """All trending leaderboards."""
        return "recipes:trending:*"


MAX_PATTERN_LENGTH: Final[int] = 256


def validate_pattern(pattern: str) -> str:
    """Check an operator-supplied invalidation pattern.

    Rejects empty patterns, patterns longer than MAX_PATTERN_LENGTH and a bare
    "*" that would wipe a whole bucket by accident.
    """
    cleaned = pattern.strip()
    if not cleaned:
        raise InvalidKeyComponentError("Pattern must not be empty")
    if len(cleaned) > MAX_PATTERN_LENGTH:
        raise InvalidKeyComponentError(
            f"Pattern must be at most {MAX_PATTERN_LENGTH} characters"
        )
    if cleaned.strip("*") == "":
        raise InvalidKeyComponentError("Pattern must not match every key")
    return cleaned
