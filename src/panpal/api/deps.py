"""Shared FastAPI dependencies for PanPal routers.

Provides:
- The cache service created at startup (app.state.cache)
- Per-request repositories and services bound to one database session
- Caller identity from the X-User-Id header
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from panpal.api.errors import UnauthorizedError
from panpal.cache import CacheAsideService
from panpal.persistence.db import get_session
from panpal.persistence.repositories import (
    FavoriteRepository,
    RatingRepository,
    RecipeRepository,
    UserRepository,
)
from panpal.recipes.services import FavoriteService, RatingService, RecipeService, UserService


def get_cache(request: Request) -> CacheAsideService:
    """The cache service owned by the running application."""
    return request.app.state.cache  # type: ignore[no-any-return]


SessionDep = Annotated[AsyncSession, Depends(get_session)]
CacheDep = Annotated[CacheAsideService, Depends(get_cache)]


# =============================================================================
# Caller identity
# =============================================================================


def optional_user(
    x_user_id: Annotated[str | None, Header(description="Caller user id")] = None,
) -> str | None:
    """Caller id when present; anonymous requests get None."""
    return x_user_id or None


def current_user(user_id: Annotated[str | None, Depends(optional_user)]) -> str:
    """Caller id, required."""
    if user_id is None:
        raise UnauthorizedError("X-User-Id header is required")
    return user_id


OptionalUser = Annotated[str | None, Depends(optional_user)]
CurrentUser = Annotated[str, Depends(current_user)]


# =============================================================================
# Services
# =============================================================================


def get_recipe_service(session: SessionDep, cache: CacheDep) -> RecipeService:
    return RecipeService(RecipeRepository(session), UserRepository(session), cache)


def get_rating_service(session: SessionDep, cache: CacheDep) -> RatingService:
    return RatingService(RatingRepository(session), RecipeRepository(session), cache)


def get_favorite_service(session: SessionDep, cache: CacheDep) -> FavoriteService:
    return FavoriteService(FavoriteRepository(session), RecipeRepository(session), cache)


def get_user_service(session: SessionDep, cache: CacheDep) -> UserService:
    return UserService(UserRepository(session), cache)


RecipeServiceDep = Annotated[RecipeService, Depends(get_recipe_service)]
RatingServiceDep = Annotated[RatingService, Depends(get_rating_service)]
FavoriteServiceDep = Annotated[FavoriteService, Depends(get_favorite_service)]
UserServiceDep = Annotated[UserService, Depends(get_user_service)]
