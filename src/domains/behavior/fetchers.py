# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Cross-domain metric fetchers.

Three narrow read adapters over tables owned by other subsystems, each
scoped to one user and week window:
- AssignmentMetricsFetcher: submissions and on-time rate
- GradeMetricsFetcher: weekly average grade and trend against the prior week
- AttendanceMetricsFetcher: days marked present or late

Each fetcher returns neutral defaults when no rows match.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any

from sqlalchemy import and_, case, distinct, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.behavior.aggregator import WeekWindow
from src.infrastructure.database.models import (
    Assignment,
    AssignmentSubmission,
    Enrollment,
    StudentAttendance,
    StudentGrade,
)
from src.models.behavior import TrendDirection

logger = logging.getLogger(__name__)

GRADE_TREND_THRESHOLD = 5.0
ATTENDED_STATUSES = ("present", "late")


@dataclass
class AssignmentMetrics:
    """Assignment submission facts for a week."""

    assignments_submitted: int = 0
    assignments_on_time: int = 0
    on_time_rate: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class GradeMetrics:
    """Grade facts for a week."""

    avg_grade: float | None = None
    grade_trend: str = TrendDirection.STABLE.value

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class AttendanceMetrics:
    """Attendance facts for a week."""

    attended_days: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def on_time_rate(submitted: int, on_time: int) -> float:
    """Percentage of submissions made on or before the due date."""
    if submitted <= 0:
        return 0.0
    return round(on_time / submitted * 100, 2)


def grade_trend(current: float | None, previous: float | None) -> TrendDirection:
    """Compare two weekly grade averages.

    A change above +5 points is improving, below -5 declining. A missing or
    zero average on either side is stable.
    """
    if not current or not previous:
        return TrendDirection.STABLE
    change = current - previous
    if change > GRADE_TREND_THRESHOLD:
        return TrendDirection.IMPROVING
    if change < -GRADE_TREND_THRESHOLD:
        return TrendDirection.DECLINING
    return TrendDirection.STABLE


class AssignmentMetricsFetcher:
    """Reads assignment submissions due or submitted in a week."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def fetch(self, user_id: int, window: WeekWindow) -> AssignmentMetrics:
        start, end = window.bounds
        stmt = (
            select(
                func.count(AssignmentSubmission.submitted_at).label("submitted"),
                func.count(
                    case(
                        (
                            and_(
                                AssignmentSubmission.submitted_at.is_not(None),
                                AssignmentSubmission.submitted_at <= Assignment.due_date,
                            ),
                            1,
                        )
                    )
                ).label("on_time"),
            )
            .select_from(AssignmentSubmission)
            .join(Assignment, AssignmentSubmission.assignment_id == Assignment.id)
            .where(
                AssignmentSubmission.student_id == user_id,
                or_(
                    and_(Assignment.due_date >= start, Assignment.due_date < end),
                    and_(
                        AssignmentSubmission.submitted_at >= start,
                        AssignmentSubmission.submitted_at < end,
                    ),
                ),
            )
        )
        row = (await self.db.execute(stmt)).one_or_none()
        if row is None:
            return AssignmentMetrics()

        submitted = int(row.submitted or 0)
        on_time = int(row.on_time or 0)
        return AssignmentMetrics(
            assignments_submitted=submitted,
            assignments_on_time=on_time,
            on_time_rate=on_time_rate(submitted, on_time),
        )


class GradeMetricsFetcher:
    """Reads graded marks for a week and the 7 days before it."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _average(self, user_id: int, window: WeekWindow) -> float | None:
        start, end = window.bounds
        stmt = (
            select(func.avg(StudentGrade.marks_obtained))
            .join(Enrollment, StudentGrade.enrollment_id == Enrollment.id)
            .where(
                Enrollment.user_id == user_id,
                StudentGrade.graded_at >= start,
                StudentGrade.graded_at < end,
            )
        )
        value = (await self.db.execute(stmt)).scalar_one_or_none()
        return float(value) if value is not None else None

    async def fetch(self, user_id: int, window: WeekWindow) -> GradeMetrics:
        current = await self._average(user_id, window)
        previous = await self._average(user_id, window.previous())
        return GradeMetrics(
            avg_grade=round(current, 2) if current is not None else None,
            grade_trend=grade_trend(current, previous).value,
        )


class AttendanceMetricsFetcher:
    """Counts distinct days attended (present or late) in a week."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def fetch(self, user_id: int, window: WeekWindow) -> AttendanceMetrics:
        stmt = (
            select(func.count(distinct(StudentAttendance.attendance_date)))
            .join(Enrollment, StudentAttendance.enrollment_id == Enrollment.id)
            .where(
                Enrollment.user_id == user_id,
                StudentAttendance.attendance_date >= window.week_start,
                StudentAttendance.attendance_date <= window.week_end,
                StudentAttendance.status.in_(ATTENDED_STATUSES),
            )
        )
        value = (await self.db.execute(stmt)).scalar_one_or_none()
        return AttendanceMetrics(attended_days=int(value or 0))
