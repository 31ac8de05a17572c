"""Tests for cache key generation."""

import base64

import pytest

from panpal.cache.keys import (
    MAX_PATTERN_LENGTH,
    CacheKeys,
    InvalidKeyComponentError,
    encode_search,
    validate_pattern,
)


def _b64(text: str) -> str:
    return base64.urlsafe_b64encode(text.encode()).decode("ascii").rstrip("=")


class TestRecipeListKey:
    """Test recipe list keys."""

    def test_defaults(self) -> None:
        """Absent selectors keep their empty positions."""
        assert CacheKeys.recipe_list() == "recipes:list::::1:10"

    def test_all_selectors(self) -> None:
        """Every selector lands in its own segment."""
        key = CacheKeys.recipe_list("dessert", "chocolate cake", 2, 20, "u1")
        assert key == f"recipes:list:dessert:{_b64('chocolate cake')}:u1:2:20"

    def test_deterministic(self) -> None:
        """Same inputs always produce the same key."""
        first = CacheKeys.recipe_list("soup", "tomato", 3, 5, "u9")
        second = CacheKeys.recipe_list("soup", "tomato", 3, 5, "u9")
        assert first == second

    def test_category_and_user_do_not_collide(self) -> None:
        """A category-only and a user-only key differ."""
        by_category = CacheKeys.recipe_list(category="u1")
        by_user = CacheKeys.recipe_list(user_id="u1")
        assert by_category != by_user

    def test_blank_search_is_absent(self) -> None:
        """Whitespace-only search is the same as no search."""
        assert CacheKeys.recipe_list(search="   ") == CacheKeys.recipe_list()

    def test_search_is_normalized(self) -> None:
        """Case and extra whitespace do not create new keys."""
        assert CacheKeys.recipe_list(search="  Chocolate   CAKE ") == CacheKeys.recipe_list(
            search="chocolate cake"
        )

    def test_search_with_separator_is_encoded(self) -> None:
        """Separator and glob characters in search text are safe."""
        key = CacheKeys.recipe_list(search="a:b*c")
        assert key.count(":") == 6
        assert "*" not in key

    @pytest.mark.parametrize("page,limit", [(0, 10), (1, 0), (-1, 10), (True, 10)])
    def test_invalid_paging_rejected(self, page: int, limit: int) -> None:
        """Page and limit must be positive integers."""
        with pytest.raises(InvalidKeyComponentError):
            CacheKeys.recipe_list(page=page, limit=limit)

    def test_category_with_separator_rejected(self) -> None:
        """Identifier selectors cannot contain the separator."""
        with pytest.raises(InvalidKeyComponentError):
            CacheKeys.recipe_list(category="main:course")


class TestEntityKeys:
    """Test detail, ratings, favorites and trending keys."""

    def test_recipe_detail(self) -> None:
        assert CacheKeys.recipe_detail("42") == "recipe:42"

    def test_recipe_detail_for_viewer(self) -> None:
        """Viewer-scoped detail keys carry the user id."""
        assert CacheKeys.recipe_detail("42", "u7") == "recipe:42:user:u7"

    def test_recipe_ratings(self) -> None:
        assert CacheKeys.recipe_ratings("42") == "recipe:ratings:42"
        assert CacheKeys.recipe_ratings("42", 2, 5) == "recipe:ratings:42:2:5"
        assert CacheKeys.recipe_ratings("42", limit=5) == "recipe:ratings:42:1:5"

    @pytest.mark.parametrize(("page", "limit"), [(0, 10), (1, 0), (-1, None)])
    def test_recipe_ratings_rejects_bad_paging(self, page, limit) -> None:
        """Page 0 must not alias the page 1 key."""
        with pytest.raises(InvalidKeyComponentError):
            CacheKeys.recipe_ratings("42", page, limit)

    def test_user_favorites(self) -> None:
        assert CacheKeys.user_favorites("u1") == "user:favorites:u1:1:10"
        assert CacheKeys.user_favorites("u1", 3, 25) == "user:favorites:u1:3:25"

    def test_trending(self) -> None:
        assert CacheKeys.trending_recipes() == "recipes:trending:24h"
        assert CacheKeys.trending_recipes("7d") == "recipes:trending:7d"

    @pytest.mark.parametrize("recipe_id", ["", "4*2", "a[b]", "x?y", "a\\b"])
    def test_invalid_recipe_id_rejected(self, recipe_id: str) -> None:
        """Empty ids and glob characters are rejected."""
        with pytest.raises(InvalidKeyComponentError):
            CacheKeys.recipe_detail(recipe_id)

    def test_error_is_value_error(self) -> None:
        """Key errors are ValueErrors for callers that catch broadly."""
        with pytest.raises(ValueError):
            CacheKeys.user_favorites("")


class TestFullKey:
    """Test bucket prefixing."""

    def test_full_key(self) -> None:
        assert CacheKeys.full_key("recipes", "recipe:42") == "recipes:recipe:42"

    def test_missing_bucket_uses_default(self) -> None:
        assert CacheKeys.full_key(None, "recipe:42") == "default:recipe:42"

    def test_invalid_bucket_rejected(self) -> None:
        with pytest.raises(InvalidKeyComponentError):
            CacheKeys.full_key("re:cipes", "recipe:42")


class TestPatterns:
    """Test invalidation patterns."""

    def test_recipe_pattern(self) -> None:
        assert CacheKeys.recipe_pattern("42") == "*recipe:42*"

    def test_recipe_ratings_pattern(self) -> None:
        assert CacheKeys.recipe_ratings_pattern("42") == "recipe:ratings:42*"
        assert CacheKeys.recipe_ratings_pattern() == "recipe:ratings:*"

    def test_user_pattern(self) -> None:
        assert CacheKeys.user_pattern("u1") == "*user:u1*"

    def test_list_and_trending_patterns(self) -> None:
        assert CacheKeys.recipe_list_pattern() == "recipes:list:*"
        assert CacheKeys.trending_pattern() == "recipes:trending:*"

    def test_user_favorites_pattern(self) -> None:
        assert CacheKeys.user_favorites_pattern() == "user:favorites:*"
        assert CacheKeys.user_favorites_pattern("u1") == "user:favorites:u1:*"


class TestEncodeSearch:
    """Test search text encoding."""

    def test_unpadded_base64url(self) -> None:
        assert encode_search("ab") == "YWI"

    def test_unicode(self) -> None:
        assert encode_search("Crème Brûlée") == _b64("crème brûlée")

    def test_case_folding_matches_lower(self) -> None:
        """Keys only merge searches the title filter treats alike."""
        assert encode_search("STRASSE") == encode_search("strasse")
        assert encode_search("Straße") != encode_search("STRASSE")


class TestValidatePattern:
    """Test operator pattern validation."""

    def test_valid_pattern_is_stripped(self) -> None:
        assert validate_pattern("  recipe:42*  ") == "recipe:42*"

    @pytest.mark.parametrize("pattern", ["", "   ", "*", "**"])
    def test_rejects_empty_and_match_all(self, pattern: str) -> None:
        with pytest.raises(InvalidKeyComponentError):
            validate_pattern(pattern)

    def test_rejects_long_pattern(self) -> None:
        with pytest.raises(InvalidKeyComponentError):
            validate_pattern("a" * (MAX_PATTERN_LENGTH + 1))
