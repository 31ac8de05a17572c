"""Global pytest configuration and fixtures.

Services are wired to in-memory repositories (tests/fakes.py) and a
MemoryStore-backed cache, so unit tests need neither PostgreSQL nor Redis.
"""

from __future__ import annotations

import pytest

from panpal.cache import CacheAsideService, MemoryStore
from panpal.recipes.services import FavoriteService, RatingService, RecipeService, UserService
from tests.fakes import (
    FakeDatabase,
    FakeFavoriteRepository,
    FakeRatingRepository,
    FakeRecipeRepository,
    FakeUserRepository,
)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: test needs Docker services")


@pytest.fixture
def db() -> FakeDatabase:
    database = FakeDatabase()
    database.add_user("u1", "Ana")
    database.add_user("u2", "Ben")
    database.add_recipe("42", "u1", title="Tomato Soup", category="soup")
    database.add_recipe("7", "u2", title="Apple Pie", category="dessert")
    return database


@pytest.fixture
def cache() -> CacheAsideService:
    return CacheAsideService(MemoryStore())


@pytest.fixture
def recipe_service(db: FakeDatabase, cache: CacheAsideService) -> RecipeService:
    return RecipeService(FakeRecipeRepository(db), FakeUserRepository(db), cache)


@pytest.fixture
def rating_service(db: FakeDatabase, cache: CacheAsideService) -> RatingService:
    return RatingService(FakeRatingRepository(db), FakeRecipeRepository(db), cache)


@pytest.fixture
def favorite_service(db: FakeDatabase, cache: CacheAsideService) -> FavoriteService:
    return FavoriteService(FakeFavoriteRepository(db), FakeRecipeRepository(db), cache)


@pytest.fixture
def user_service(db: FakeDatabase, cache: CacheAsideService) -> UserService:
    return UserService(FakeUserRepository(db), cache)
