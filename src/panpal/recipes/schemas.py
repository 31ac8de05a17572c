"""Pydantic models exchanged between services, cache and API.

Cached values are the JSON dumps of these models; reads validate them back,
so a hit and a fresh fetch return the same type.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Literal

from pydantic import BaseModel, Field

MAX_PAGE_SIZE = 50

Timeframe = Literal["24h", "7d", "30d"]

TIMEFRAME_WINDOWS: dict[str, timedelta] = {
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
}


def normalize_paging(page: int | None, limit: int | None) -> tuple[int, int]:
    """Clamp page to >= 1 and limit to 1..MAX_PAGE_SIZE (default 10)."""
    page = max(1, page or 1)
    limit = min(MAX_PAGE_SIZE, max(1, limit or 10))
    return page, limit


def empty_distribution() -> dict[str, int]:
    """Rating counts keyed by score, highest first."""
    return {str(score): 0 for score in range(5, 0, -1)}


# -----------------------------------------------------------------------------
# Input
# -----------------------------------------------------------------------------


class IngredientIn(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    quantity: str = Field(min_length=1, max_length=100)


class StepIn(BaseModel):
    step_number: int | None = Field(default=None, ge=1)
    instruction: str = Field(min_length=1)
    image_url: str | None = None


class RecipeCreate(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    description: str | None = None
    cooking_time: str | None = None
    category: str = Field(min_length=1, max_length=100, pattern=r"^[^:*?\[\]\\]+$")
    image_url: str | None = None
    ingredients: list[IngredientIn] = Field(default_factory=list)
    steps: list[StepIn] = Field(default_factory=list)


class RecipeUpdate(BaseModel):
    """Partial update. Lists, when given, replace the existing children."""

    title: str | None = Field(default=None, min_length=1, max_length=300)
    description: str | None = None
    cooking_time: str | None = None
    category: str | None = Field(
        default=None, min_length=1, max_length=100, pattern=r"^[^:*?\[\]\\]+$"
    )
    image_url: str | None = None
    ingredients: list[IngredientIn] | None = None
    steps: list[StepIn] | None = None


class RatingIn(BaseModel):
    score: int = Field(ge=1, le=5)
    comment: str | None = None
    image_urls: list[str] = Field(default_factory=list)


class UserUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    avatar_url: str | None = None


# -----------------------------------------------------------------------------
# Output
# -----------------------------------------------------------------------------


class Ingredient(BaseModel):
    id: str
    name: str
    quantity: str


class Step(BaseModel):
    id: str
    step_number: int
    instruction: str
    image_url: str | None = None


class Recipe(BaseModel):
    id: str
    title: str
    description: str | None = None
    cooking_time: str | None = None
    author_id: str
    author_name: str
    category: str
    image_url: str | None = None
    rating_avg: float = 0.0
    rating_count: int = 0
    # Viewer-scoped, only set when the request has a user
    is_favorite: bool | None = None
    my_rating: int | None = None
    created_at: datetime
    updated_at: datetime
    ingredients: list[Ingredient] = Field(default_factory=list)
    steps: list[Step] = Field(default_factory=list)


class RecipePage(BaseModel):
    items: list[Recipe]
    page: int
    limit: int
    total: int


class TrendingRecipe(BaseModel):
    recipe: Recipe
    score: float


class TrendingList(BaseModel):
    timeframe: str
    items: list[TrendingRecipe]


class RatingUser(BaseModel):
    id: str
    name: str | None = None
    avatar_url: str | None = None


class Rating(BaseModel):
    id: str
    score: int
    comment: str | None = None
    image_urls: list[str] = Field(default_factory=list)
    user: RatingUser
    created_at: datetime


class RatingPage(BaseModel):
    """Rating/comment aggregate for one recipe."""

    recipe_id: str
    average: float
    count: int
    # Active ratings per score "1".."5"
    distribution: dict[str, int] = Field(default_factory=empty_distribution)
    items: list[Rating]
    page: int
    limit: int
    total: int


class User(BaseModel):
    id: str
    email: str
    name: str | None = None
    avatar_url: str | None = None
