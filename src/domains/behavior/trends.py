# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Snapshot history and week-over-week trends."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.behavior.snapshots import SnapshotStore
from src.infrastructure.database.models import WeeklyBehaviorSnapshot
from src.models.behavior import (
    PatternHistoryResponse,
    SnapshotResponse,
    TrendDirection,
    TrendSummary,
)

logger = logging.getLogger(__name__)

TREND_CHANGE_PCT = 10.0


def calculate_trend(current: float | None, previous: float | None) -> TrendDirection:
    """Classify the relative change between two measurements.

    A change above +10% is improving and below -10% declining. With a zero
    or missing baseline the trend is stable.
    """
    if not previous or current is None:
        return TrendDirection.STABLE

    change_pct = (current - previous) / previous * 100
    if change_pct > TREND_CHANGE_PCT:
        return TrendDirection.IMPROVING
    if change_pct < -TREND_CHANGE_PCT:
        return TrendDirection.DECLINING
    return TrendDirection.STABLE


def summarize_trends(
    current: WeeklyBehaviorSnapshot,
    previous: WeeklyBehaviorSnapshot,
) -> TrendSummary:
    """Trends between the two most recent snapshots."""
    return TrendSummary(
        engagement=calculate_trend(current.overall_engagement, previous.overall_engagement),
        activity=calculate_trend(current.login_count, previous.login_count),
        consistency=calculate_trend(current.consistency_score, previous.consistency_score),
        # Lower risk is better, so the newer score is the baseline.
        risk=calculate_trend(previous.risk_score, current.risk_score),
    )


class TrendService:
    """Serves a user's snapshot history with trend summary."""

    def __init__(self, db: AsyncSession, default_weeks: int = 8, max_weeks: int = 52) -> None:
        self.db = db
        self.default_weeks = default_weeks
        self.max_weeks = max_weeks

    async def get_history(self, user_id: int, weeks: int | None = None) -> PatternHistoryResponse:
        """Get up to `weeks` most recent snapshots for a user.

        Args:
            user_id: User whose history to read.
            weeks: Number of weeks, clamped to [1, max_weeks].

        Returns:
            PatternHistoryResponse, newest first. trends is None with fewer
            than two snapshots.
        """
        count = self.default_weeks if weeks is None else weeks
        count = max(1, min(count, self.max_weeks))

        snapshots = await SnapshotStore(self.db).history(user_id, count)
        history = [SnapshotResponse.model_validate(snapshot) for snapshot in snapshots]

        trends = None
        if len(snapshots) >= 2:
            trends = summarize_trends(snapshots[0], snapshots[1])

        return PatternHistoryResponse(
            user_id=user_id,
            weeks=count,
            history=history,
            current=history[0] if history else None,
            trends=trends,
        )
