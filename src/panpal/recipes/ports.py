"""Repository interfaces the recipe services depend on.

Write methods flush but do not commit; services call commit() and only
then invalidate the cache, so invalidation always follows a durable write.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from panpal.recipes.schemas import (
    RatingIn,
    RatingPage,
    Recipe,
    RecipeCreate,
    RecipePage,
    RecipeUpdate,
    TrendingRecipe,
    User,
    UserUpdate,
)


class Committable(Protocol):
    async def commit(self) -> None: ...


class RecipeRepository(Committable, Protocol):
    async def get(self, recipe_id: str, viewer_id: str | None = None) -> Recipe | None: ...

    async def get_author_id(self, recipe_id: str) -> str | None: ...

    async def list_page(
        self,
        *,
        category: str | None,
        search: str | None,
        page: int,
        limit: int,
        viewer_id: str | None,
    ) -> RecipePage: ...

    async def trending(self, since: datetime, limit: int) -> list[TrendingRecipe]: ...

    async def create(self, author_id: str, author_name: str, data: RecipeCreate) -> Recipe: ...

    async def update(self, recipe_id: str, data: RecipeUpdate) -> Recipe | None: ...

    async def set_image(self, recipe_id: str, image_url: str) -> Recipe | None: ...

    async def delete(self, recipe_id: str) -> bool: ...


class RatingRepository(Committable, Protocol):
    async def upsert(self, recipe_id: str, user_id: str, data: RatingIn) -> None: ...

    async def soft_delete(self, recipe_id: str, user_id: str) -> bool: ...

    async def list_page(self, recipe_id: str, page: int, limit: int) -> RatingPage | None: ...


class FavoriteRepository(Committable, Protocol):
    async def add(self, user_id: str, recipe_id: str) -> None: ...

    async def remove(self, user_id: str, recipe_id: str) -> bool: ...

    async def list_page(self, user_id: str, page: int, limit: int) -> RecipePage: ...


class UserRepository(Committable, Protocol):
    async def get(self, user_id: str) -> User | None: ...

    async def update(self, user_id: str, data: UserUpdate) -> User | None: ...
