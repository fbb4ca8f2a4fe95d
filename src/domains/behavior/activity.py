# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Learning session logging and session history.

Sessions written here are the raw input the weekly aggregation reads.
"""

import logging
import math
from datetime import timedelta

from sqlalchemy import case, distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database.models import LearningSession
from src.models.behavior import (
    ActivityLogRequest,
    SessionHistoryResponse,
    SessionPagination,
    SessionResponse,
    SessionSummary,
)
from src.utils.datetime import DAYS_PER_WEEK, ensure_utc, utc_now

logger = logging.getLogger(__name__)


def _count_type(content_type: str):
    return func.sum(case((LearningSession.content_type == content_type, 1), else_=0))


class ActivityService:
    """Records learning sessions and serves a user's session history."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def log_session(self, user_id: int, request: ActivityLogRequest) -> LearningSession:
        """Record a learning session for a user.

        The session starts now unless a start is given. When no duration is
        given it is derived from session_end, and the stored session_end is
        always start + duration.

        Args:
            user_id: User the session belongs to.
            request: Session details.

        Returns:
            The persisted LearningSession.
        """
        start = ensure_utc(request.session_start) or utc_now()

        duration = request.duration_seconds
        if duration is None and request.session_end is not None:
            elapsed = (ensure_utc(request.session_end) - start).total_seconds()  # type: ignore[operator]
            duration = max(0, int(elapsed))
        duration = duration or 0

        session = LearningSession(
            user_id=user_id,
            subject_id=request.subject_id,
            content_type=request.content_type,
            content_id=request.content_id,
            content_title=request.content_title or request.action,
            session_start=start,
            session_end=start + timedelta(seconds=duration),
            duration_seconds=duration,
            is_completed=request.is_completed,
            extra_data=request.metadata,
        )
        self.db.add(session)
        await self.db.flush()

        logger.info(
            "Learning session logged: user=%s, type=%s, duration=%ds",
            user_id,
            session.content_type,
            duration,
        )
        return session

    async def session_history(
        self,
        user_id: int,
        weeks: int = 4,
        limit: int = 100,
        offset: int = 0,
    ) -> SessionHistoryResponse:
        """List a user's sessions from the trailing weeks, newest first.

        Args:
            user_id: User whose sessions to list.
            weeks: Lookback in weeks.
            limit: Page size.
            offset: Rows to skip.

        Returns:
            SessionHistoryResponse with summary statistics over the whole
            lookback window.
        """
        since = utc_now() - timedelta(days=weeks * DAYS_PER_WEEK)
        conditions = (
            LearningSession.user_id == user_id,
            LearningSession.session_start >= since,
        )

        summary_row = (
            await self.db.execute(
                select(
                    func.count(LearningSession.id).label("total_sessions"),
                    func.sum(LearningSession.duration_seconds).label("total_seconds"),
                    func.avg(LearningSession.duration_seconds).label("avg_seconds"),
                    func.count(distinct(func.date(LearningSession.session_start))).label(
                        "unique_days"
                    ),
                    _count_type("video").label("video_sessions"),
                    _count_type("assignment").label("assignment_sessions"),
                    _count_type("quiz").label("quiz_sessions"),
                    _count_type("discussion").label("discussion_sessions"),
                ).where(*conditions)
            )
        ).one()

        result = await self.db.execute(
            select(LearningSession)
            .where(*conditions)
            .order_by(LearningSession.session_start.desc())
            .limit(limit)
            .offset(offset)
        )
        sessions = list(result.scalars().all())

        total = int(summary_row.total_sessions or 0)
        summary = SessionSummary(
            total_sessions=total,
            total_minutes=round(float(summary_row.total_seconds or 0) / 60, 2),
            avg_minutes=round(float(summary_row.avg_seconds or 0) / 60, 2),
            unique_days=int(summary_row.unique_days or 0),
            video_sessions=int(summary_row.video_sessions or 0),
            assignment_sessions=int(summary_row.assignment_sessions or 0),
            quiz_sessions=int(summary_row.quiz_sessions or 0),
            discussion_sessions=int(summary_row.discussion_sessions or 0),
        )

        return SessionHistoryResponse(
            user_id=user_id,
            sessions=[SessionResponse.model_validate(s) for s in sessions],
            summary=summary,
            pagination=SessionPagination(
                total=total,
                limit=limit,
                offset=offset,
                pages=math.ceil(total / limit) if limit else 0,
                weeks=weeks,
            ),
        )
