"""Recipe domain services.

Reads go through the cache-aside service; writes commit to the database and
then invalidate every cache family the write could have staled.

Cached values are the JSON dumps of the response schemas, validated back on
every read so hits and misses hand the same types to the API layer.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from panpal.cache import CacheAsideService, CacheBucket, CacheInvalidator, CacheKeys, CacheTTL
from panpal.recipes.errors import (
    FavoriteNotFoundError,
    PermissionDeniedError,
    RatingNotFoundError,
    RecipeNotFoundError,
    UserNotFoundError,
)
from panpal.recipes.ports import (
    FavoriteRepository,
    RatingRepository,
    RecipeRepository,
    UserRepository,
)
from panpal.recipes.schemas import (
    TIMEFRAME_WINDOWS,
    RatingIn,
    RatingPage,
    Recipe,
    RecipeCreate,
    RecipePage,
    RecipeUpdate,
    TrendingList,
    User,
    UserUpdate,
    normalize_paging,
)

logger = logging.getLogger(__name__)

TRENDING_LIMIT = 20


def _normalize_search(search: str | None) -> str | None:
    if search is None:
        return None
    return " ".join(search.split()) or None


class RecipeService:
    """Recipe listing, detail, trending and authoring."""

    def __init__(
        self,
        recipes: RecipeRepository,
        users: UserRepository,
        cache: CacheAsideService,
    ):
        self.recipes = recipes
        self.users = users
        self.cache = cache
        self.invalidator = CacheInvalidator(cache)

    async def _require_owner(self, recipe_id: str, user_id: str) -> None:
        author_id = await self.recipes.get_author_id(recipe_id)
        if author_id is None:
            raise RecipeNotFoundError(recipe_id)
        if author_id != user_id:
            raise PermissionDeniedError(f"Recipe '{recipe_id}' belongs to another user")

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def list_recipes(
        self,
        *,
        category: str | None = None,
        search: str | None = None,
        page: int | None = None,
        limit: int | None = None,
        viewer_id: str | None = None,
    ) -> RecipePage:
        page, limit = normalize_paging(page, limit)
        search = _normalize_search(search)
        key = CacheKeys.recipe_list(category, search, page, limit, viewer_id)

        async def fetch() -> dict:
            result = await self.recipes.list_page(
                category=category, search=search, page=page, limit=limit, viewer_id=viewer_id
            )
            return result.model_dump(mode="json")

        # Search pages churn faster and live in their own bucket
        if search:
            bucket, ttl = CacheBucket.SEARCH, CacheTTL.SEARCH_RESULTS
        else:
            bucket, ttl = CacheBucket.RECIPES, CacheTTL.RECIPE_LIST
        data = await self.cache.get_or_set(key, fetch, ttl=ttl, bucket=bucket)
        return RecipePage.model_validate(data)

    async def get_recipe(self, recipe_id: str, viewer_id: str | None = None) -> Recipe:
        key = CacheKeys.recipe_detail(recipe_id, viewer_id)

        async def fetch() -> dict:
            recipe = await self.recipes.get(recipe_id, viewer_id)
            if recipe is None:
                raise RecipeNotFoundError(recipe_id)
            return recipe.model_dump(mode="json")

        data = await self.cache.get_or_set(
            key, fetch, ttl=CacheTTL.RECIPE_DETAIL, bucket=CacheBucket.RECIPES
        )
        return Recipe.model_validate(data)

    async def trending(self, timeframe: str = "24h") -> TrendingList:
        window = TIMEFRAME_WINDOWS.get(timeframe)
        if window is None:
            raise ValueError(f"Unsupported timeframe: {timeframe!r}")
        key = CacheKeys.trending_recipes(timeframe)

        async def fetch() -> dict:
            since = datetime.now(UTC) - window
            items = await self.recipes.trending(since, TRENDING_LIMIT)
            return TrendingList(timeframe=timeframe, items=items).model_dump(mode="json")

        data = await self.cache.get_or_set(
            key, fetch, ttl=CacheTTL.TRENDING, bucket=CacheBucket.TRENDING
        )
        return TrendingList.model_validate(data)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def create_recipe(self, author_id: str, data: RecipeCreate) -> Recipe:
        author = await self.users.get(author_id)
        if author is None:
            raise UserNotFoundError(author_id)

        recipe = await self.recipes.create(author_id, author.name or author.email, data)
        await self.recipes.commit()
        logger.info(f"Recipe {recipe.id} created by {author_id}")

        await self.invalidator.recipe_created()
        return recipe

    async def update_recipe(self, recipe_id: str, user_id: str, data: RecipeUpdate) -> Recipe:
        await self._require_owner(recipe_id, user_id)
        recipe = await self.recipes.update(recipe_id, data)
        if recipe is None:
            raise RecipeNotFoundError(recipe_id)
        await self.recipes.commit()

        await self.invalidator.recipe_changed(recipe_id)
        return recipe

    async def update_image(self, recipe_id: str, user_id: str, image_url: str) -> Recipe:
        await self._require_owner(recipe_id, user_id)
        recipe = await self.recipes.set_image(recipe_id, image_url)
        if recipe is None:
            raise RecipeNotFoundError(recipe_id)
        await self.recipes.commit()

        await self.invalidator.recipe_changed(recipe_id)
        return recipe

    async def delete_recipe(self, recipe_id: str, user_id: str) -> None:
        await self._require_owner(recipe_id, user_id)
        if not await self.recipes.delete(recipe_id):
            raise RecipeNotFoundError(recipe_id)
        await self.recipes.commit()
        logger.info(f"Recipe {recipe_id} deleted by {user_id}")

        await self.invalidator.recipe_deleted(recipe_id)


class RatingService:
    """Ratings and comments on recipes."""

    def __init__(
        self,
        ratings: RatingRepository,
        recipes: RecipeRepository,
        cache: CacheAsideService,
    ):
        self.ratings = ratings
        self.recipes = recipes
        self.cache = cache
        self.invalidator = CacheInvalidator(cache)

    async def list_ratings(
        self, recipe_id: str, page: int | None = None, limit: int | None = None
    ) -> RatingPage:
        page, limit = normalize_paging(page, limit)
        key = CacheKeys.recipe_ratings(recipe_id, page, limit)

        async def fetch() -> dict:
            result = await self.ratings.list_page(recipe_id, page, limit)
            if result is None:
                raise RecipeNotFoundError(recipe_id)
            return result.model_dump(mode="json")

        data = await self.cache.get_or_set(
            key, fetch, ttl=CacheTTL.RECIPE_RATINGS, bucket=CacheBucket.RATINGS
        )
        return RatingPage.model_validate(data)

    async def rate(self, recipe_id: str, user_id: str, data: RatingIn) -> RatingPage:
        """Create or replace the user's rating and return the first page."""
        if await self.recipes.get_author_id(recipe_id) is None:
            raise RecipeNotFoundError(recipe_id)

        await self.ratings.upsert(recipe_id, user_id, data)
        await self.ratings.commit()

        await self.invalidator.rating_changed(recipe_id)
        return await self.list_ratings(recipe_id)

    async def remove_rating(self, recipe_id: str, user_id: str) -> None:
        if not await self.ratings.soft_delete(recipe_id, user_id):
            raise RatingNotFoundError(recipe_id, user_id)
        await self.ratings.commit()

        await self.invalidator.rating_changed(recipe_id)


class FavoriteService:
    """Per-user favorite recipes."""

    def __init__(
        self,
        favorites: FavoriteRepository,
        recipes: RecipeRepository,
        cache: CacheAsideService,
    ):
        self.favorites = favorites
        self.recipes = recipes
        self.cache = cache
        self.invalidator = CacheInvalidator(cache)

    async def list_favorites(
        self, user_id: str, page: int | None = None, limit: int | None = None
    ) -> RecipePage:
        page, limit = normalize_paging(page, limit)
        key = CacheKeys.user_favorites(user_id, page, limit)

        async def fetch() -> dict:
            result = await self.favorites.list_page(user_id, page, limit)
            return result.model_dump(mode="json")

        data = await self.cache.get_or_set(
            key, fetch, ttl=CacheTTL.USER_FAVORITES, bucket=CacheBucket.FAVORITES
        )
        return RecipePage.model_validate(data)

    async def add_favorite(self, user_id: str, recipe_id: str) -> None:
        if await self.recipes.get_author_id(recipe_id) is None:
            raise RecipeNotFoundError(recipe_id)

        await self.favorites.add(user_id, recipe_id)
        await self.favorites.commit()

        await self.invalidator.favorite_changed(user_id, recipe_id)

    async def remove_favorite(self, user_id: str, recipe_id: str) -> None:
        if not await self.favorites.remove(user_id, recipe_id):
            raise FavoriteNotFoundError(recipe_id, user_id)
        await self.favorites.commit()

        await self.invalidator.favorite_changed(user_id, recipe_id)


class UserService:
    """User profile reads and updates."""

    def __init__(self, users: UserRepository, cache: CacheAsideService):
        self.users = users
        self.invalidator = CacheInvalidator(cache)

    async def get_user(self, user_id: str) -> User:
        user = await self.users.get(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    async def update_profile(self, user_id: str, data: UserUpdate) -> User:
        user = await self.users.update(user_id, data)
        if user is None:
            raise UserNotFoundError(user_id)
        await self.users.commit()

        await self.invalidator.user_changed(user_id)
        return user
