"""Persistence layer for PanPal.

This module provides:
- Async PostgreSQL engine and session factory
- SQLAlchemy ORM models for users, recipes, ratings and favorites
- Repositories that map rows to the cached response schemas
"""

from panpal.persistence.db import get_engine, get_session, init_db
from panpal.persistence.repositories import (
    FavoriteRepository,
    RatingRepository,
    RecipeRepository,
    UserRepository,
)
from panpal.persistence.tables import (
    FavoriteTable,
    RatingTable,
    RecipeTable,
    UserTable,
)

__all__ = [
    # DB
    "get_engine",
    "get_session",
    "init_db",
    # Tables
    "UserTable",
    "RecipeTable",
    "RatingTable",
    "FavoriteTable",
    # Repositories
    "RecipeRepository",
    "RatingRepository",
    "FavoriteRepository",
    "UserRepository",
]
