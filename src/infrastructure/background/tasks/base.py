# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared helpers for Dramatiq actors.

Actors are synchronous functions, while the snapshot pipeline is async.
Each worker thread keeps one event loop for its whole lifetime, and the
per-thread database engine (see ``get_worker_sessionmaker``) is bound to
that loop. Creating a fresh loop drops the thread's engine so the next
session is built on the new loop.
"""

import asyncio
import logging
import threading
from typing import Any, Coroutine, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_thread_local = threading.local()


def _get_thread_event_loop() -> asyncio.AbstractEventLoop:
    """Return this thread's event loop, creating it on first use."""
    loop = getattr(_thread_local, "event_loop", None)

    if loop is None or loop.is_closed():
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        _thread_local.event_loop = loop

        # Import here to avoid circular imports
        from src.infrastructure.database.connection import _clear_thread_db_connections

        _clear_thread_db_connections()

        logger.debug(
            "Created new event loop for thread %s",
            threading.current_thread().name,
        )

    return loop


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine to completion on the current thread's loop.

    Args:
        coro: Coroutine to run.

    Returns:
        Result of the coroutine.

    Example:
        @dramatiq.actor
        def my_task(user_id: int):
            async def _execute():
                async with get_worker_session() as session:
                    ...
            return run_async(_execute())
    """
    return _get_thread_event_loop().run_until_complete(coro)
