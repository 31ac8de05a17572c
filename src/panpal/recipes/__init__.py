"""Recipe domain: schemas, repository interfaces and cached services."""

from panpal.recipes.errors import (
    DomainError,
    FavoriteNotFoundError,
    PermissionDeniedError,
    RatingNotFoundError,
    RecipeNotFoundError,
    UserNotFoundError,
)
from panpal.recipes.services import FavoriteService, RatingService, RecipeService, UserService

__all__ = [
    # Services
    "RecipeService",
    "RatingService",
    "FavoriteService",
    "UserService",
    # Errors
    "DomainError",
    "RecipeNotFoundError",
    "RatingNotFoundError",
    "FavoriteNotFoundError",
    "UserNotFoundError",
    "PermissionDeniedError",
]
