"""Endpoints for the calling user.

Endpoints:
    GET   /users/me            - Own profile
    PATCH /users/me            - Update own profile
    GET   /users/me/favorites  - Own favorite recipes (paged)
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query

from panpal.api.deps import CurrentUser, FavoriteServiceDep, UserServiceDep
from panpal.recipes.schemas import MAX_PAGE_SIZE, RecipePage, User, UserUpdate

router = APIRouter(prefix="/users/me", tags=["users"])


@router.get("", response_model=User)
async def get_me(service: UserServiceDep, user: CurrentUser) -> User:
    return await service.get_user(user)


@router.patch("", response_model=User)
async def update_me(body: UserUpdate, service: UserServiceDep, user: CurrentUser) -> User:
    return await service.update_profile(user, body)


@router.get("/favorites", response_model=RecipePage)
async def list_my_favorites(
    service: FavoriteServiceDep,
    user: CurrentUser,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = 10,
) -> RecipePage:
    return await service.list_favorites(user, page, limit)
