"""Domain errors raised by the recipe services."""

from __future__ import annotations


class DomainError(Exception):
    """Base class for recipe domain errors."""


class RecipeNotFoundError(DomainError):
    def __init__(self, recipe_id: str):
        self.recipe_id = recipe_id
        super().__init__(f"Recipe '{recipe_id}' not found")


class RatingNotFoundError(DomainError):
    def __init__(self, recipe_id: str, user_id: str):
        self.recipe_id = recipe_id
        self.user_id = user_id
        super().__init__(f"Rating by '{user_id}' on recipe '{recipe_id}' not found")


class FavoriteNotFoundError(DomainError):
    def __init__(self, recipe_id: str, user_id: str):
        self.recipe_id = recipe_id
        self.user_id = user_id
        super().__init__(f"Recipe '{recipe_id}' is not a favorite of '{user_id}'")


class UserNotFoundError(DomainError):
    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User '{user_id}' not found")


class PermissionDeniedError(DomainError):
    """The requester does not own the resource."""
