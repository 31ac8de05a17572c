"""Rating and favorite endpoints scoped to one recipe.

Endpoints:
    GET    /recipes/{recipe_id}/ratings   - Rating/comment aggregate (paged)
    PUT    /recipes/{recipe_id}/ratings   - Create or replace own rating
    DELETE /recipes/{recipe_id}/ratings   - Remove own rating
    PUT    /recipes/{recipe_id}/favorite  - Mark as favorite
    DELETE /recipes/{recipe_id}/favorite  - Unmark favorite
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query, Response

from panpal.api.deps import CurrentUser, FavoriteServiceDep, RatingServiceDep
from panpal.recipes.schemas import MAX_PAGE_SIZE, RatingIn, RatingPage

router = APIRouter(prefix="/recipes/{recipe_id}", tags=["ratings"])


@router.get("/ratings", response_model=RatingPage)
async def list_ratings(
    recipe_id: str,
    service: RatingServiceDep,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = 10,
) -> RatingPage:
    return await service.list_ratings(recipe_id, page, limit)


@router.put("/ratings", response_model=RatingPage)
async def rate_recipe(
    recipe_id: str, body: RatingIn, service: RatingServiceDep, user: CurrentUser
) -> RatingPage:
    return await service.rate(recipe_id, user, body)


@router.delete("/ratings", status_code=204)
async def remove_rating(recipe_id: str, service: RatingServiceDep, user: CurrentUser) -> Response:
    await service.remove_rating(recipe_id, user)
    return Response(status_code=204)


@router.put("/favorite", status_code=204)
async def add_favorite(
    recipe_id: str, service: FavoriteServiceDep, user: CurrentUser
) -> Response:
    await service.add_favorite(user, recipe_id)
    return Response(status_code=204)


@router.delete("/favorite", status_code=204)
async def remove_favorite(
    recipe_id: str, service: FavoriteServiceDep, user: CurrentUser
) -> Response:
    await service.remove_favorite(user, recipe_id)
    return Response(status_code=204)
