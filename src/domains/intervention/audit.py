# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Best-effort audit trail for intervention mutations.

Audit entries are written in their own session after the primary mutation
has committed. A failed audit write is logged and discarded; it never
reaches the caller of the mutation.
"""

import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database.models import AuditLog

logger = logging.getLogger(__name__)


class AuditLogger:
    """Appends audit entries through an independent session.

    Attributes:
        session_factory: Returns a context manager yielding a committing session.
    """

    def __init__(
        self,
        session_factory: Callable[[], AbstractAsyncContextManager[AsyncSession]],
    ) -> None:
        self.session_factory = session_factory

    async def record(
        self,
        actor_id: int,
        action: str,
        details: dict[str, Any] | None = None,
    ) -> bool:
        """Append an audit entry.

        Returns:
            True if the entry was written, False if the write failed.
        """
        try:
            async with self.session_factory() as session:
                session.add(AuditLog(user_id=actor_id, action=action, details=details))
            return True
        except Exception as e:
            logger.warning(
                "Audit write failed: action=%s, actor=%s, error=%s",
                action,
                actor_id,
                str(e),
            )
            return False
