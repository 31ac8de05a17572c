"""Recipe endpoints.

Reads are served through the cache; writes commit and then invalidate.

Endpoints:
    GET    /recipes                     - List recipes (category, search, paging)
    GET    /recipes/trending            - Trending leaderboard for a timeframe
    GET    /recipes/{recipe_id}         - Recipe detail, viewer-scoped
    POST   /recipes                     - Create recipe
    PATCH  /recipes/{recipe_id}         - Update own recipe
    PUT    /recipes/{recipe_id}/image   - Replace own recipe image
    DELETE /recipes/{recipe_id}         - Delete own recipe
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query, Response
from pydantic import BaseModel, Field

from panpal.api.deps import CurrentUser, OptionalUser, RecipeServiceDep
from panpal.recipes.schemas import (
    MAX_PAGE_SIZE,
    Recipe,
    RecipeCreate,
    RecipePage,
    RecipeUpdate,
    Timeframe,
    TrendingList,
)

router = APIRouter(prefix="/recipes", tags=["recipes"])


class ImageUpdate(BaseModel):
    image_url: str = Field(min_length=1)


@router.get("", response_model=RecipePage)
async def list_recipes(
    service: RecipeServiceDep,
    viewer: OptionalUser,
    category: Annotated[str | None, Query(max_length=100)] = None,
    search: Annotated[str | None, Query(max_length=200)] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = 10,
) -> RecipePage:
    return await service.list_recipes(
        category=category, search=search, page=page, limit=limit, viewer_id=viewer
    )


@router.get("/trending", response_model=TrendingList)
async def trending_recipes(
    service: RecipeServiceDep,
    timeframe: Timeframe = "24h",
) -> TrendingList:
    return await service.trending(timeframe)


@router.get("/{recipe_id}", response_model=Recipe)
async def get_recipe(recipe_id: str, service: RecipeServiceDep, viewer: OptionalUser) -> Recipe:
    return await service.get_recipe(recipe_id, viewer)


@router.post("", response_model=Recipe, status_code=201)
async def create_recipe(
    body: RecipeCreate, service: RecipeServiceDep, user: CurrentUser
) -> Recipe:
    return await service.create_recipe(user, body)


@router.patch("/{recipe_id}", response_model=Recipe)
async def update_recipe(
    recipe_id: str, body: RecipeUpdate, service: RecipeServiceDep, user: CurrentUser
) -> Recipe:
    return await service.update_recipe(recipe_id, user, body)


@router.put("/{recipe_id}/image", response_model=Recipe)
async def update_recipe_image(
    recipe_id: str, body: ImageUpdate, service: RecipeServiceDep, user: CurrentUser
) -> Recipe:
    return await service.update_image(recipe_id, user, body.image_url)


@router.delete("/{recipe_id}", status_code=204)
async def delete_recipe(recipe_id: str, service: RecipeServiceDep, user: CurrentUser) -> Response:
    await service.delete_recipe(recipe_id, user)
    return Response(status_code=204)
