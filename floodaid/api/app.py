# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI application factory.

This module provides the main application factory for the FloodAid API.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from floodaid import __version__
from floodaid.api.endpoints import router as api_router
from floodaid.api.middleware.auth import AuthMiddleware
from floodaid.api.middleware.rate_limit import limiter, rate_limit_exceeded_handler
from floodaid.api.routes import health
from floodaid.core.config import get_settings
from floodaid.infrastructure.cache import close_redis, init_redis
from floodaid.infrastructure.database.connection import (
    close_database,
    create_schema,
    get_engine,
    get_session,
    init_database,
)
from floodaid.infrastructure.database.seeds import seed_bootstrap_admin, seed_reference_data
from floodaid.utils.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Initializes and cleans up:
    - Database engine, schema and seed data
    - Redis client

    Args:
        app: The FastAPI application instance.

    Yields:
        None during application runtime.
    """
    settings = get_settings()
    setup_logging(settings)
    logger.info("Starting FloodAid API (environment=%s)", settings.environment)

    # =========================================================================
    # Startup
    # =========================================================================

    try:
        await init_database(settings)
        await create_schema(get_engine())
        logger.info("Database initialized")
    except Exception as e:
        logger.warning("Failed to initialize database: %s", str(e))

    try:
        async with get_session() as session:
            await seed_reference_data(session)
    except Exception as e:
        logger.warning("Failed to seed reference data: %s", str(e))

    try:
        async with get_session() as session:
            await seed_bootstrap_admin(session, settings.bootstrap_admin)
    except Exception as e:
        logger.warning("Failed to seed bootstrap admin: %s", str(e))

    try:
        await init_redis(settings)
        logger.info("Redis connection initialized")
    except Exception as e:
        logger.warning("Failed to initialize Redis: %s", str(e))

    yield

    # =========================================================================
    # Shutdown
    # =========================================================================

    try:
        await close_redis()
        logger.info("Redis connection closed")
    except Exception as e:
        logger.warning("Error closing Redis: %s", str(e))

    try:
        await close_database()
        logger.info("Database connections closed")
    except Exception as e:
        logger.warning("Error closing database connections: %s", str(e))

    logger.info("Shutting down FloodAid API")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="FloodAid API",
        description="Flood relief coordination backend",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
        # Redirects from /path to /path/ drop the Authorization header
        redirect_slashes=False,
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    # Middleware (last added is first executed)
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(AuthMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.origins_list,
        allow_credentials=settings.cors.allow_credentials,
        allow_methods=settings.cors.allow_methods,
        allow_headers=settings.cors.allow_headers,
    )

    app.include_router(health.router, tags=["Health"])
    app.include_router(api_router)

    return app
