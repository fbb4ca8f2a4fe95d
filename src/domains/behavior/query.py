# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""At-risk student listing.

Reads the most recent week that has any snapshot and returns active
students ranked by risk_score descending, then overall_engagement
ascending. The composite and urgency scores attached to each row are
presentation aids and never change that ordering.
"""

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from sqlalchemy import case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.behavior.exceptions import InvalidRiskLevelError
from src.domains.behavior.snapshots import SnapshotStore
from src.infrastructure.database.models import (
    Intervention,
    Program,
    User,
    WeeklyBehaviorSnapshot,
)
from src.models.behavior import (
    AtRiskListResponse,
    AtRiskStudent,
    AtRiskSummary,
    Pagination,
    RiskLevel,
)
from src.models.intervention import OPEN_STATUSES

logger = logging.getLogger(__name__)

STUDENT_ROLE = "student"
RISK_LEVEL_ALL = "all"
RISK_LEVEL_RISKY = "risky"
RISKY_LEVELS = (RiskLevel.WARNING.value, RiskLevel.AT_RISK.value, RiskLevel.CRITICAL.value)

URGENCY_BY_LEVEL = {
    RiskLevel.CRITICAL.value: 40,
    RiskLevel.AT_RISK.value: 25,
    RiskLevel.WARNING.value: 10,
}
NO_INTERVENTION_BONUS = 20
LOW_ACTIVITY_BONUS = 15
LOW_ACTIVITY_DAYS = 3
NEEDS_ATTENTION_THRESHOLD = 50


def composite_score(engagement: float, on_time_rate: float, consistency: float) -> float:
    """Blend engagement, punctuality and consistency into one 0-100 figure."""
    return round(0.4 * engagement + 0.3 * on_time_rate + 0.3 * consistency, 1)


def urgency_score(risk_level: str, open_interventions: int, active_days: int) -> int:
    """Score how urgently a student needs follow-up.

    Adds a level base, a bonus when nobody has an open intervention for the
    student, and a bonus for fewer than three active days.
    """
    score = URGENCY_BY_LEVEL.get(risk_level, 0)
    if open_interventions == 0:
        score += NO_INTERVENTION_BONUS
    if active_days < LOW_ACTIVITY_DAYS:
        score += LOW_ACTIVITY_BONUS
    return score


@dataclass(frozen=True)
class AtRiskFilter:
    """Validated at-risk listing filter.

    Attributes:
        risk_levels: Levels to include, or None for every level.
        program_id: Restrict to a program.
        semester: Restrict to a current semester.
        search: Case-insensitive substring over name, email and student number.
        limit: Page size.
        offset: Rows to skip.
    """

    risk_levels: tuple[str, ...] | None = RISKY_LEVELS
    program_id: int | None = None
    semester: int | None = None
    search: str | None = None
    limit: int = 50
    offset: int = 0

    @classmethod
    def build(
        cls,
        risk_level: str | None = None,
        program_id: int | None = None,
        semester: int | None = None,
        search: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
        default_limit: int = 50,
        max_limit: int = 200,
    ) -> "AtRiskFilter":
        """Parse raw query parameters.

        Raises:
            InvalidRiskLevelError: If risk_level is not a known level,
                'all' or 'risky'.
        """
        levels: tuple[str, ...] | None
        if risk_level is None or risk_level == RISK_LEVEL_RISKY:
            levels = RISKY_LEVELS
        elif risk_level == RISK_LEVEL_ALL:
            levels = None
        elif risk_level in {level.value for level in RiskLevel}:
            levels = (risk_level,)
        else:
            raise InvalidRiskLevelError(risk_level)

        page_size = default_limit if limit is None else limit
        page_size = max(1, min(page_size, max_limit))

        term = search.strip() if search else None

        return cls(
            risk_levels=levels,
            program_id=program_id,
            semester=semester,
            search=term or None,
            limit=page_size,
            offset=max(0, offset or 0),
        )


class AtRiskQueryService:
    """Ranked, filtered and paginated view over the latest snapshots."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    def _conditions(self, week_start: date, filters: AtRiskFilter) -> list[Any]:
        conditions: list[Any] = [
            WeeklyBehaviorSnapshot.week_start == week_start,
            User.role == STUDENT_ROLE,
            User.is_active.is_(True),
        ]
        if filters.risk_levels is not None:
            conditions.append(WeeklyBehaviorSnapshot.risk_level.in_(filters.risk_levels))
        if filters.program_id is not None:
            conditions.append(User.program_id == filters.program_id)
        if filters.semester is not None:
            conditions.append(User.current_semester == filters.semester)
        if filters.search:
            pattern = f"%{filters.search}%"
            conditions.append(
                or_(
                    User.full_name.ilike(pattern),
                    User.email.ilike(pattern),
                    User.student_number.ilike(pattern),
                )
            )
        return conditions

    async def _summary(self, conditions: list[Any]) -> AtRiskSummary:
        level = WeeklyBehaviorSnapshot.risk_level
        stmt = (
            select(
                func.count(WeeklyBehaviorSnapshot.id).label("total"),
                func.sum(case((level == RiskLevel.CRITICAL.value, 1), else_=0)).label("critical"),
                func.sum(case((level == RiskLevel.AT_RISK.value, 1), else_=0)).label("at_risk"),
                func.sum(case((level == RiskLevel.WARNING.value, 1), else_=0)).label("warning"),
                func.avg(WeeklyBehaviorSnapshot.overall_engagement).label("avg_engagement"),
                func.avg(WeeklyBehaviorSnapshot.on_time_rate).label("avg_on_time_rate"),
            )
            .select_from(WeeklyBehaviorSnapshot)
            .join(User, User.id == WeeklyBehaviorSnapshot.user_id)
            .where(*conditions)
        )
        row = (await self.db.execute(stmt)).one()
        return AtRiskSummary(
            total=int(row.total or 0),
            critical=int(row.critical or 0),
            at_risk=int(row.at_risk or 0),
            warning=int(row.warning or 0),
            avg_engagement=round(float(row.avg_engagement or 0), 1),
            avg_on_time_rate=round(float(row.avg_on_time_rate or 0), 1),
        )

    async def list_at_risk(self, filters: AtRiskFilter) -> AtRiskListResponse:
        """List students from the latest snapshot week.

        Args:
            filters: Validated filter.

        Returns:
            AtRiskListResponse. Empty with week_start=None when no snapshot
            exists at all.
        """
        week_start = await SnapshotStore(self.db).latest_week_start()
        if week_start is None:
            return AtRiskListResponse(
                week_start=None,
                students=[],
                summary=AtRiskSummary(
                    total=0,
                    critical=0,
                    at_risk=0,
                    warning=0,
                    avg_engagement=0.0,
                    avg_on_time_rate=0.0,
                ),
                pagination=Pagination(total=0, limit=filters.limit, offset=filters.offset, pages=0),
            )

        conditions = self._conditions(week_start, filters)
        summary = await self._summary(conditions)

        open_interventions = (
            select(func.count(Intervention.id))
            .where(
                Intervention.student_id == WeeklyBehaviorSnapshot.user_id,
                Intervention.status.in_([status.value for status in OPEN_STATUSES]),
            )
            .correlate(WeeklyBehaviorSnapshot)
            .scalar_subquery()
        )
        last_intervention_date = self._latest_intervention(Intervention.created_at)
        last_intervention_status = self._latest_intervention(Intervention.status)

        stmt = (
            select(
                WeeklyBehaviorSnapshot,
                User,
                Program.name.label("program_name"),
                open_interventions.label("open_interventions"),
                last_intervention_date.label("last_intervention_date"),
                last_intervention_status.label("last_intervention_status"),
            )
            .join(User, User.id == WeeklyBehaviorSnapshot.user_id)
            .outerjoin(Program, Program.id == User.program_id)
            .where(*conditions)
            .order_by(
                WeeklyBehaviorSnapshot.risk_score.desc(),
                WeeklyBehaviorSnapshot.overall_engagement.asc(),
                WeeklyBehaviorSnapshot.user_id.asc(),
            )
            .limit(filters.limit)
            .offset(filters.offset)
        )
        result = await self.db.execute(stmt)

        students = [
            self._to_student(
                snapshot,
                user,
                program_name,
                int(open_count or 0),
                last_date,
                last_status,
            )
            for snapshot, user, program_name, open_count, last_date, last_status in result.all()
        ]

        logger.debug(
            "At-risk listing: week=%s, total=%d, returned=%d",
            week_start,
            summary.total,
            len(students),
        )

        return AtRiskListResponse(
            week_start=week_start,
            students=students,
            summary=summary,
            pagination=Pagination(
                total=summary.total,
                limit=filters.limit,
                offset=filters.offset,
                pages=math.ceil(summary.total / filters.limit),
            ),
        )

    @staticmethod
    def _latest_intervention(column: Any) -> Any:
        """Column of the newest intervention for the snapshot's student."""
        return (
            select(column)
            .where(Intervention.student_id == WeeklyBehaviorSnapshot.user_id)
            .order_by(Intervention.created_at.desc(), Intervention.id.desc())
            .limit(1)
            .correlate(WeeklyBehaviorSnapshot)
            .scalar_subquery()
        )

    @staticmethod
    def _to_student(
        snapshot: WeeklyBehaviorSnapshot,
        user: User,
        program_name: str | None,
        open_count: int,
        last_intervention_date: datetime | None = None,
        last_intervention_status: str | None = None,
    ) -> AtRiskStudent:
        urgency = urgency_score(snapshot.risk_level, open_count, snapshot.active_days)
        return AtRiskStudent(
            user_id=user.id,
            full_name=user.full_name,
            email=user.email,
            student_number=user.student_number,
            program_id=user.program_id,
            program_name=program_name,
            current_semester=user.current_semester,
            week_start=snapshot.week_start,
            risk_score=snapshot.risk_score,
            risk_level=snapshot.risk_level,
            risk_factors=list(snapshot.risk_factors or []),
            overall_engagement=snapshot.overall_engagement,
            on_time_rate=snapshot.on_time_rate,
            consistency_score=snapshot.consistency_score,
            active_days=snapshot.active_days,
            login_count=snapshot.login_count,
            attended_days=snapshot.attended_days,
            avg_grade=snapshot.avg_grade,
            grade_trend=snapshot.grade_trend,
            calculated_at=snapshot.calculated_at,
            open_interventions=open_count,
            last_intervention_date=last_intervention_date,
            last_intervention_status=last_intervention_status,
            composite_score=composite_score(
                snapshot.overall_engagement,
                snapshot.on_time_rate,
                snapshot.consistency_score,
            ),
            urgency_score=urgency,
            needs_attention=urgency >= NEEDS_ATTENTION_THRESHOLD,
        )
