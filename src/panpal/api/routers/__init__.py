"""API routers for PanPal."""

from panpal.api.routers import admin, health, metrics, ratings, recipes, users

__all__ = ["admin", "health", "metrics", "ratings", "recipes", "users"]
