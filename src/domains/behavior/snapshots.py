# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Snapshot store for weekly behavior snapshots.

One row per (user_id, week_start). Writes are a single atomic
INSERT ... ON CONFLICT DO UPDATE keyed by the unique constraint, so a
recomputation overwrites every metric column and stamps calculated_at.
Overlapping writers for the same key are not serialized; the last write
wins.
"""

import logging
from datetime import date
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.behavior.aggregator import WeekWindow
from src.infrastructure.database.models import WeeklyBehaviorSnapshot
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)

SNAPSHOT_UNIQUE_CONSTRAINT = "uq_behavior_snapshots_user_week"
_KEY_COLUMNS = frozenset({"user_id", "week_start"})


class SnapshotStore:
    """Reads and idempotently writes weekly behavior snapshots.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def upsert(
        self,
        user_id: int,
        window: WeekWindow,
        values: dict[str, Any],
    ) -> None:
        """Insert or fully overwrite the snapshot for a user and week.

        Args:
            user_id: User the snapshot belongs to.
            window: Week the snapshot covers.
            values: Metric and classification columns.
        """
        columns = WeeklyBehaviorSnapshot.__table__.columns.keys()
        row = {key: value for key, value in values.items() if key in columns}
        row.update(
            user_id=user_id,
            week_start=window.week_start,
            week_end=window.week_end,
            calculated_at=utc_now(),
        )
        row.pop("id", None)

        stmt = pg_insert(WeeklyBehaviorSnapshot).values(**row)
        stmt = stmt.on_conflict_do_update(
            constraint=SNAPSHOT_UNIQUE_CONSTRAINT,
            set_={
                key: stmt.excluded[key]
                for key in row
                if key not in _KEY_COLUMNS
            },
        )
        await self.db.execute(stmt)
        await self.db.flush()

        logger.debug(
            "Snapshot written: user=%s, week=%s, risk=%s",
            user_id,
            window.week_start,
            row.get("risk_score"),
        )

    async def history(self, user_id: int, limit: int) -> list[WeeklyBehaviorSnapshot]:
        """Most recent snapshots for a user, newest first."""
        result = await self.db.execute(
            select(WeeklyBehaviorSnapshot)
            .where(WeeklyBehaviorSnapshot.user_id == user_id)
            .order_by(WeeklyBehaviorSnapshot.week_start.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def latest_week_start(self) -> date | None:
        """Most recent week that has any snapshot."""
        result = await self.db.execute(select(func.max(WeeklyBehaviorSnapshot.week_start)))
        return result.scalar_one_or_none()
