# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database connection management using SQLAlchemy async.

Uses SQLAlchemy 2.0 async API with asyncpg driver.

Two kinds of connection state are kept:
- A process-wide engine for the API, created in the FastAPI lifespan.
- A per-thread engine for Dramatiq worker threads. Async engines are bound
  to the event loop they were created on, and each worker thread runs its
  own loop (see ``background.tasks.base``).

Example:
    from src.infrastructure.database.connection import init_database, get_session

    await init_database(settings)

    async with get_session() as session:
        result = await session.execute(select(User))
"""

import threading
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncIterator, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

if TYPE_CHECKING:
    from src.core.config.settings import Settings

_engine: Optional[AsyncEngine] = None
_sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None

_thread_local = threading.local()


class DatabaseError(Exception):
    """Base exception for database operations.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying SQLAlchemy or database error.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


def _build_engine(settings: "Settings") -> AsyncEngine:
    return create_async_engine(
        settings.db.url,
        pool_size=settings.db.pool_size,
        max_overflow=settings.db.max_overflow,
        pool_pre_ping=True,
        pool_recycle=1800,
        echo=False,
    )


def _build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_database(settings: "Settings") -> None:
    """Initialize the database connection pool.

    Called once at application startup.

    Args:
        settings: Application settings containing database configuration.

    Raises:
        DatabaseError: If connection pool creation fails.
    """
    global _engine, _sessionmaker

    try:
        _engine = _build_engine(settings)
        _sessionmaker = _build_sessionmaker(_engine)
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to initialize database connection", e) from e


async def close_database() -> None:
    """Close the database connection pool at application shutdown."""
    global _engine, _sessionmaker

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _sessionmaker = None


def get_engine() -> AsyncEngine:
    """Get the database async engine.

    Raises:
        DatabaseError: If the database has not been initialized.
    """
    if _engine is None:
        raise DatabaseError("Database not initialized. Call init_database() first.")
    return _engine


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """Get the process-wide sessionmaker.

    Raises:
        DatabaseError: If the database has not been initialized.
    """
    if _sessionmaker is None:
        raise DatabaseError("Database not initialized. Call init_database() first.")
    return _sessionmaker


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    """Get an async session.

    The session is committed on success and rolled back on exception.

    Yields:
        AsyncSession for database operations.

    Raises:
        DatabaseError: If the database has not been initialized or
            if a database operation fails.
    """
    sessionmaker = get_sessionmaker()

    async with sessionmaker() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            raise DatabaseError("Database operation failed", e) from e
        except Exception:
            await session.rollback()
            raise


def get_worker_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """Get the sessionmaker bound to the current worker thread.

    Each Dramatiq worker thread owns an engine created lazily on first use,
    so connections stay attached to that thread's event loop.

    Returns:
        Sessionmaker for the current thread.
    """
    maker = getattr(_thread_local, "sessionmaker", None)

    if maker is None:
        from src.core.config import get_settings

        engine = _build_engine(get_settings())
        maker = _build_sessionmaker(engine)
        _thread_local.engine = engine
        _thread_local.sessionmaker = maker

    return maker


@asynccontextmanager
async def get_worker_session() -> AsyncIterator[AsyncSession]:
    """Get a committing session bound to the current worker thread.

    Same commit/rollback contract as get_session().
    """
    sessionmaker = get_worker_sessionmaker()

    async with sessionmaker() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            raise DatabaseError("Database operation failed", e) from e
        except Exception:
            await session.rollback()
            raise


def _clear_thread_db_connections() -> None:
    """Forget the current thread's engine.

    Called by run_async() when a new event loop is created for a thread.
    The engine is recreated on next access, bound to the new loop.
    """
    _thread_local.engine = None
    _thread_local.sessionmaker = None


async def check_database_connection() -> bool:
    """Check if the database is reachable.

    Returns:
        True if the database is reachable, False otherwise.
    """
    if _engine is None:
        return False

    try:
        async with _engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        return False
