# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependency injection definitions.

This module provides dependency functions for FastAPI endpoints.
Dependencies are used to:
- Get database sessions
- Get authenticated users and enforce roles
- Provide the session factory for work that needs its own sessions

Example:
    @router.get("/behavior/at-risk")
    async def list_at_risk(
        db: AsyncSession = Depends(get_db),
        current_user: CurrentUser = Depends(require_staff),
    ):
        ...
"""

import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from typing import AsyncGenerator

from fastapi import HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.middleware.auth import CurrentUser, get_current_user
from src.core.config import get_settings
from src.infrastructure.database.connection import (
    close_database,
    get_session,
    init_database,
)

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


async def init_db() -> None:
    """Initialize the database connection pool."""
    await init_database(get_settings())


async def close_db() -> None:
    """Close the database connection pool."""
    await close_database()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get a database session.

    Committed when the request succeeds, rolled back otherwise.

    Yields:
        AsyncSession.
    """
    async with get_session() as session:
        yield session


def get_session_factory() -> SessionFactory:
    """Session factory for work that opens its own sessions.

    Used by the batch orchestrator (one session per user) and the audit
    logger (independent of the request session).
    """
    return get_session


# =========================================================================
# Authentication Dependencies
# =========================================================================


def require_auth(request: Request) -> CurrentUser:
    """Require authenticated user.

    Args:
        request: HTTP request.

    Returns:
        CurrentUser.

    Raises:
        HTTPException: If not authenticated.
    """
    user = get_current_user(request)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_admin(request: Request) -> CurrentUser:
    """Require admin user.

    Raises:
        HTTPException: If not authenticated or not admin.
    """
    user = require_auth(request)
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user


def require_staff(request: Request) -> CurrentUser:
    """Require any non-student role.

    Raises:
        HTTPException: If not authenticated or a student.
    """
    user = require_auth(request)
    if user.is_student:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Staff access required",
        )
    return user
