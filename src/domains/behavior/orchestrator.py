# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Batch orchestration of weekly snapshot computation.

A run resolves a cohort to a list of user ids, then for each user:
1. Loads the week's sessions and events and aggregates them
2. Fetches assignment, grade and attendance metrics
3. Classifies risk over the merged metrics
4. Upserts the weekly snapshot

Users are processed one after another, each in its own database session,
so one user's failure is logged and counted without affecting the rest.
The run checks its wall-clock budget before every user and stops early
(truncated) once the budget is exceeded.

Example:
    orchestrator = BatchOrchestrator(get_session, time_budget_seconds=3600)
    result = await orchestrator.run("all")
"""

import logging
import time
from collections.abc import Awaitable, Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any

from sqlalchemy import exists, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.behavior.aggregator import EventStoreReader, WeekWindow, aggregate_metrics
from src.domains.behavior.classifier import RiskClassification, RiskInputs, classify_risk
from src.domains.behavior.exceptions import InvalidCohortError
from src.domains.behavior.fetchers import (
    AssignmentMetricsFetcher,
    AttendanceMetricsFetcher,
    GradeMetricsFetcher,
)
from src.domains.behavior.snapshots import SnapshotStore
from src.infrastructure.database.models import ActivityLog, LearningSession, User
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)

STUDENT_ROLE = "student"
RECENT_ACTIVITY_DAYS = 7

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]
SnapshotPipeline = Callable[[AsyncSession, int, WeekWindow], Awaitable[RiskClassification]]


class CohortKind(str, Enum):
    """How a cohort selects users."""

    ALL = "all"
    CURRENT_WEEK = "current_week"
    SINGLE_USER = "single_user"


@dataclass(frozen=True)
class CohortFilter:
    """Parsed cohort specification.

    Attributes:
        kind: Selection mode.
        user_id: Target user for SINGLE_USER.
    """

    kind: CohortKind
    user_id: int | None = None

    @classmethod
    def parse(cls, value: "str | int | CohortFilter") -> "CohortFilter":
        """Parse 'all', 'current_week', or a positive user id.

        Raises:
            InvalidCohortError: For anything else.
        """
        if isinstance(value, CohortFilter):
            return value

        if isinstance(value, bool):
            raise InvalidCohortError(value)

        if isinstance(value, int):
            if value <= 0:
                raise InvalidCohortError(value)
            return cls(kind=CohortKind.SINGLE_USER, user_id=value)

        if isinstance(value, str):
            text = value.strip()
            if text == CohortKind.ALL.value:
                return cls(kind=CohortKind.ALL)
            if text == CohortKind.CURRENT_WEEK.value:
                return cls(kind=CohortKind.CURRENT_WEEK)
            if text.isdigit() and int(text) > 0:
                return cls(kind=CohortKind.SINGLE_USER, user_id=int(text))

        raise InvalidCohortError(value)

    @property
    def label(self) -> str:
        if self.kind == CohortKind.SINGLE_USER:
            return str(self.user_id)
        return self.kind.value


class CohortSelector:
    """Resolves a cohort filter to user ids."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def select_user_ids(
        self,
        cohort: CohortFilter,
        now: datetime | None = None,
    ) -> list[int]:
        """Return the user ids of a cohort in ascending order.

        A single-user cohort is returned as-is without a lookup.
        """
        if cohort.kind == CohortKind.SINGLE_USER:
            return [cohort.user_id]  # type: ignore[list-item]

        stmt = select(User.id).where(
            User.role == STUDENT_ROLE,
            User.is_active.is_(True),
        )

        if cohort.kind == CohortKind.CURRENT_WEEK:
            since = (now or utc_now()) - timedelta(days=RECENT_ACTIVITY_DAYS)
            recent_session = exists().where(
                LearningSession.user_id == User.id,
                LearningSession.session_start >= since,
            )
            recent_event = exists().where(
                ActivityLog.user_id == User.id,
                ActivityLog.created_at >= since,
            )
            stmt = stmt.where(
                or_(recent_session, recent_event, User.current_semester.is_not(None))
            )

        result = await self.db.execute(stmt.order_by(User.id))
        return [row[0] for row in result.all()]


async def compute_user_snapshot(
    db: AsyncSession,
    user_id: int,
    window: WeekWindow,
) -> RiskClassification:
    """Compute and persist one user's snapshot for a week.

    Args:
        db: Database session.
        user_id: User to process.
        window: Week to compute.

    Returns:
        The risk classification that was stored.
    """
    sessions, events = await EventStoreReader(db).load(user_id, window)
    metrics = aggregate_metrics(sessions, events, tz_name=window.tz_name)

    values: dict[str, Any] = metrics.to_dict()
    values.update((await AssignmentMetricsFetcher(db).fetch(user_id, window)).to_dict())
    values.update((await GradeMetricsFetcher(db).fetch(user_id, window)).to_dict())
    values.update((await AttendanceMetricsFetcher(db).fetch(user_id, window)).to_dict())

    classification = classify_risk(RiskInputs.from_mapping(values))
    values.update(classification.to_dict())

    await SnapshotStore(db).upsert(user_id, window, values)
    return classification


@dataclass
class BatchRunResult:
    """Outcome of a batch run."""

    cohort: str
    week_start: date
    week_end: date
    processed: int = 0
    errors: int = 0
    elapsed_seconds: float = 0.0
    truncated: bool = False
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "cohort": self.cohort,
            "week_start": self.week_start.isoformat(),
            "week_end": self.week_end.isoformat(),
            "processed": self.processed,
            "errors": self.errors,
            "elapsed_seconds": self.elapsed_seconds,
            "truncated": self.truncated,
            "error": self.error,
        }


class BatchOrchestrator:
    """Runs the snapshot pipeline over a cohort under a time budget.

    Attributes:
        session_factory: Returns a context manager yielding a session that
            commits on success and rolls back on error.
        time_budget_seconds: Wall-clock limit for one run.
        tz_name: Timezone the week is expressed in.
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        time_budget_seconds: float,
        tz_name: str = "UTC",
        clock: Callable[[], float] = time.monotonic,
        pipeline: SnapshotPipeline = compute_user_snapshot,
    ) -> None:
        self.session_factory = session_factory
        self.time_budget_seconds = time_budget_seconds
        self.tz_name = tz_name
        self._clock = clock
        self._pipeline = pipeline

    async def run(
        self,
        cohort: "str | int | CohortFilter" = "all",
        week_start: date | datetime | None = None,
    ) -> BatchRunResult:
        """Compute snapshots for every user in a cohort.

        Args:
            cohort: 'all', 'current_week', or a user id.
            week_start: Any moment inside the target week. Defaults to now.

        Returns:
            BatchRunResult with processed and error counts. An invalid cohort
            yields processed=0, errors=1 without touching any user.
        """
        started = self._clock()
        window = WeekWindow.containing(week_start or utc_now(), tz_name=self.tz_name)

        try:
            cohort_filter = CohortFilter.parse(cohort)
        except InvalidCohortError as e:
            logger.error("Snapshot run rejected: %s", e)
            return BatchRunResult(
                cohort=str(cohort),
                week_start=window.week_start,
                week_end=window.week_end,
                errors=1,
                elapsed_seconds=round(self._clock() - started, 3),
                error=str(e),
            )

        result = BatchRunResult(
            cohort=cohort_filter.label,
            week_start=window.week_start,
            week_end=window.week_end,
        )

        async with self.session_factory() as db:
            user_ids = await CohortSelector(db).select_user_ids(cohort_filter)

        logger.info(
            "Snapshot run started: cohort=%s, week=%s, users=%d",
            result.cohort,
            window.week_start,
            len(user_ids),
        )

        for user_id in user_ids:
            if self._clock() - started > self.time_budget_seconds:
                result.truncated = True
                logger.warning(
                    "Snapshot run exceeded time budget of %.0fs, stopping before user=%s",
                    self.time_budget_seconds,
                    user_id,
                )
                break

            try:
                async with self.session_factory() as db:
                    await self._pipeline(db, user_id, window)
                result.processed += 1
            except Exception as e:
                result.errors += 1
                logger.error(
                    "Snapshot failed: user=%s, week=%s, error=%s",
                    user_id,
                    window.week_start,
                    str(e),
                    exc_info=True,
                )

        result.elapsed_seconds = round(self._clock() - started, 3)

        logger.info(
            "Snapshot run completed: cohort=%s, processed=%d, errors=%d, truncated=%s, elapsed=%.1fs",
            result.cohort,
            result.processed,
            result.errors,
            result.truncated,
            result.elapsed_seconds,
        )
        return result
