"""FastAPI application factory for PanPal.

Creates the application with:
- Recipe, rating, favorite and user routers
- Health, metrics and cache administration endpoints
- Lifecycle management for the database and the cache
- Structured logging and Prometheus metrics
- Result/Message error responses
- ORJSON for fast JSON serialization
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.responses import ORJSONResponse

from panpal import __version__
from panpal.api.errors import register_exception_handlers
from panpal.api.middleware import CorrelationMiddleware
from panpal.api.routers import admin, health, ratings, recipes, users
from panpal.api.routers import metrics as metrics_router
from panpal.cache import close_cache, init_cache
from panpal.config import settings
from panpal.observability import configure_logging
from panpal.observability.metrics import MetricsMiddleware, get_metrics
from panpal.persistence.db import close_db, init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle.

    On startup:
    - Configure structured logging
    - Initialize Prometheus metrics
    - Initialize database connection pool
    - Connect the cache (disabled if the store is unreachable)

    On shutdown:
    - Drain pending cache writes and close the store
    - Close database connections
    """
    configure_logging(json_format=settings.env != "dev", level=settings.log_level)
    get_metrics()

    logger.info(f"Starting {settings.app_name} ({settings.env})")
    await init_db()
    app.state.cache = await init_cache(settings)
    logger.info(f"{settings.app_name} startup complete")

    yield

    logger.info(f"Shutting down {settings.app_name}")
    await close_cache(app.state.cache)
    await close_db()
    logger.info(f"{settings.app_name} shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        description="Recipe sharing backend with a Redis cache-aside layer",
        version=__version__,
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    # CorrelationMiddleware is innermost so log records carry the request id
    app.add_middleware(CorrelationMiddleware)
    if settings.enable_metrics:
        app.add_middleware(MetricsMiddleware)

    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(metrics_router.router)
    app.include_router(recipes.router)
    app.include_router(ratings.router)
    app.include_router(users.router)
    app.include_router(admin.router)

    return app
