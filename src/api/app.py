# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI Application Factory.

This module provides the main application factory for the behavior
analytics API.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.dependencies import close_db, init_db
from src.api.middleware.auth import AuthMiddleware
from src.api.routes import health
from src.api.v1 import router as v1_router
from src.core.config import get_settings
from src.infrastructure.background import (
    setup_dramatiq,
    shutdown_dramatiq,
    start_scheduler,
    stop_scheduler,
)
from src.utils.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Initializes and cleans up:
    - Logging
    - Database connections
    - Dramatiq broker
    - APScheduler for the weekly snapshot job

    Args:
        app: The FastAPI application instance.

    Yields:
        None during application runtime.
    """
    settings = get_settings()
    setup_logging(settings)
    logger.info(
        "Starting behavior analytics API: environment=%s, debug=%s",
        settings.environment,
        settings.debug,
    )

    # =========================================================================
    # Startup
    # =========================================================================

    try:
        await init_db()
        logger.info("Database connections initialized")
    except Exception as e:
        logger.warning("Failed to initialize database connections: %s", str(e))

    try:
        setup_dramatiq()
        logger.info("Dramatiq broker initialized")
    except Exception as e:
        logger.warning("Failed to setup Dramatiq: %s", str(e))

    try:
        await start_scheduler()
        logger.info("Scheduler started")
    except Exception as e:
        logger.warning("Failed to start scheduler: %s", str(e))

    yield

    # =========================================================================
    # Shutdown
    # =========================================================================

    try:
        await stop_scheduler()
        logger.info("Scheduler stopped")
    except Exception as e:
        logger.warning("Error stopping scheduler: %s", str(e))

    try:
        shutdown_dramatiq()
        logger.info("Dramatiq broker shutdown")
    except Exception as e:
        logger.warning("Error shutting down Dramatiq: %s", str(e))

    try:
        await close_db()
        logger.info("Database connections closed")
    except Exception as e:
        logger.warning("Error closing database connections: %s", str(e))

    logger.info("Shutting down behavior analytics API")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Behavior Analytics API",
        description="Weekly learning behavior snapshots, risk classification and interventions",
        version="1.0.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
        # Disable automatic redirects from /path to /path/
        # This prevents 307 redirects that lose Authorization headers
        redirect_slashes=False,
    )

    # =========================================================================
    # Middleware (order matters - last added is first executed)
    # =========================================================================

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.origins_list,
        allow_credentials=settings.cors.allow_credentials,
        allow_methods=settings.cors.allow_methods,
        allow_headers=settings.cors.allow_headers,
    )

    app.add_middleware(AuthMiddleware)

    # =========================================================================
    # Routes
    # =========================================================================
    app.include_router(health.router, tags=["Health"])
    app.include_router(v1_router)

    return app
