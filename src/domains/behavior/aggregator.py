# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Weekly behavior metric aggregation.

This module turns one user's raw learning sessions and activity events for
one week into a flat metrics record:
- Login count and session duration statistics
- Per-content-type session counts and video completion rate
- Time-of-day distribution and preferred study time
- Active days, consistency score and engagement sub-scores

The aggregation itself is a pure function (aggregate_metrics). The
EventStoreReader loads the raw rows for a user and week window.

Usage:
    from src.domains.behavior.aggregator import EventStoreReader, WeekWindow, aggregate_metrics

    window = WeekWindow.containing(utc_now(), tz_name="UTC")
    sessions, events = await EventStoreReader(db).load(user_id, window)
    metrics = aggregate_metrics(sessions, events, tz_name=window.tz_name)
"""

import logging
from collections.abc import Sequence
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database.models import ActivityLog, LearningSession
from src.models.behavior import StudyTime
from src.utils.datetime import (
    DAYS_PER_WEEK,
    to_local,
    week_bounds,
    week_end_for,
    week_start_for,
)

logger = logging.getLogger(__name__)

# Weekly targets that map to a 100% engagement sub-score
VIDEO_TARGET = 7
ASSIGNMENT_TARGET = 5
DISCUSSION_TARGET = 5

# Bucket order doubles as the tie-break priority for the preferred time
BUCKET_ORDER = (
    StudyTime.MORNING,
    StudyTime.AFTERNOON,
    StudyTime.EVENING,
    StudyTime.NIGHT,
)


class SessionLike(Protocol):
    """Fields of a learning session the aggregator reads."""

    session_start: datetime
    duration_seconds: int
    content_type: str
    is_completed: bool


class EventLike(Protocol):
    """Fields of an activity event the aggregator reads."""

    action: str
    created_at: datetime


@dataclass(frozen=True)
class WeekWindow:
    """A Monday-to-Sunday week in a given timezone.

    Attributes:
        week_start: Monday of the week.
        tz_name: Timezone the calendar days are expressed in.
    """

    week_start: date
    tz_name: str = "UTC"

    @classmethod
    def containing(cls, moment: datetime | date, tz_name: str = "UTC") -> "WeekWindow":
        """Build the window for the week containing a moment."""
        return cls(week_start=week_start_for(moment, tz_name), tz_name=tz_name)

    @property
    def week_end(self) -> date:
        """Sunday of the week."""
        return week_end_for(self.week_start)

    @property
    def bounds(self) -> tuple[datetime, datetime]:
        """Half-open UTC interval [start, end) covering the week."""
        return week_bounds(self.week_start, self.tz_name)

    def previous(self) -> "WeekWindow":
        """The 7-day window immediately before this one."""
        return WeekWindow(
            week_start=self.week_start - timedelta(days=DAYS_PER_WEEK),
            tz_name=self.tz_name,
        )


@dataclass
class BehaviorMetrics:
    """Flat metrics record for one user and week.

    Every field has a neutral default so an empty week is fully defined.
    """

    login_count: int = 0
    total_session_minutes: int = 0
    avg_session_minutes: float = 0.0
    max_session_minutes: int = 0
    video_sessions: int = 0
    video_completion_rate: float = 0.0
    assignment_sessions: int = 0
    quiz_attempts: int = 0
    discussion_posts: int = 0
    morning_activity_pct: float = 0.0
    afternoon_activity_pct: float = 0.0
    evening_activity_pct: float = 0.0
    night_activity_pct: float = 0.0
    preferred_study_time: str = StudyTime.VARIED.value
    active_days: int = 0
    consistency_score: float = 0.0
    video_engagement: float = 0.0
    assignment_engagement: float = 0.0
    discussion_engagement: float = 0.0
    overall_engagement: float = 0.0
    time_distribution: dict[str, int] = field(default_factory=dict, compare=False)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a dictionary of persisted fields."""
        data = asdict(self)
        data.pop("time_distribution")
        return data


def time_bucket(hour: int) -> StudyTime:
    """Map a local hour (0-23) to its time-of-day bucket.

    Morning is [6, 12), afternoon [12, 18), evening [18, 23), and
    everything else is night.
    """
    if 6 <= hour < 12:
        return StudyTime.MORNING
    if 12 <= hour < 18:
        return StudyTime.AFTERNOON
    if 18 <= hour < 23:
        return StudyTime.EVENING
    return StudyTime.NIGHT


def capped_percentage(count: float, target: float) -> float:
    """Express count as a percentage of target, capped at 100."""
    return min(100.0, round(count / target * 100, 2))


def preferred_study_time(distribution: dict[StudyTime, int]) -> StudyTime:
    """Pick the bucket with the highest count.

    Ties resolve to the earliest bucket in BUCKET_ORDER. With no bucketed
    activity the result is VARIED.
    """
    best = max(distribution.values(), default=0)
    if best == 0:
        return StudyTime.VARIED
    for bucket in BUCKET_ORDER:
        if distribution.get(bucket, 0) == best:
            return bucket
    return StudyTime.VARIED


def aggregate_metrics(
    sessions: Sequence[SessionLike],
    events: Sequence[EventLike],
    tz_name: str = "UTC",
) -> BehaviorMetrics:
    """Aggregate one week of raw activity into a metrics record.

    Args:
        sessions: Learning sessions that started inside the week.
        events: Activity events created inside the week.
        tz_name: Timezone for hour-of-day and calendar-day decisions.

    Returns:
        BehaviorMetrics. Empty inputs yield the all-zero record.
    """
    metrics = BehaviorMetrics()

    # Explicit login events and session rows both count as logins
    login_events = sum(1 for event in events if "login" in (event.action or "").lower())
    metrics.login_count = login_events + len(sessions)

    durations: list[float] = []
    type_counts = {"video": 0, "video_completed": 0, "assignment": 0, "quiz": 0, "discussion": 0}
    distribution = {bucket: 0 for bucket in BUCKET_ORDER}
    active_days: set[date] = set()

    for session in sessions:
        durations.append(int(session.duration_seconds or 0) / 60)

        content_type = session.content_type
        if content_type in type_counts:
            type_counts[content_type] += 1
        if content_type == "video" and session.is_completed:
            type_counts["video_completed"] += 1

        local_start = to_local(session.session_start, tz_name)
        distribution[time_bucket(local_start.hour)] += 1
        active_days.add(local_start.date())

    for event in events:
        active_days.add(to_local(event.created_at, tz_name).date())

    if durations:
        metrics.total_session_minutes = int(sum(durations))
        metrics.avg_session_minutes = round(sum(durations) / len(durations), 2)
        metrics.max_session_minutes = int(max(durations))

    metrics.video_sessions = type_counts["video"]
    if type_counts["video"] > 0:
        metrics.video_completion_rate = round(
            type_counts["video_completed"] / type_counts["video"] * 100, 2
        )
    metrics.assignment_sessions = type_counts["assignment"]
    metrics.quiz_attempts = type_counts["quiz"]
    metrics.discussion_posts = type_counts["discussion"]

    bucketed = sum(distribution.values())
    if bucketed > 0:
        metrics.morning_activity_pct = round(distribution[StudyTime.MORNING] / bucketed * 100, 2)
        metrics.afternoon_activity_pct = round(
            distribution[StudyTime.AFTERNOON] / bucketed * 100, 2
        )
        metrics.evening_activity_pct = round(distribution[StudyTime.EVENING] / bucketed * 100, 2)
        metrics.night_activity_pct = round(distribution[StudyTime.NIGHT] / bucketed * 100, 2)
    metrics.preferred_study_time = preferred_study_time(distribution).value
    metrics.time_distribution = {bucket.value: count for bucket, count in distribution.items()}

    metrics.active_days = len(active_days)
    metrics.consistency_score = capped_percentage(len(active_days), DAYS_PER_WEEK)

    metrics.video_engagement = capped_percentage(type_counts["video"], VIDEO_TARGET)
    metrics.assignment_engagement = capped_percentage(type_counts["assignment"], ASSIGNMENT_TARGET)
    metrics.discussion_engagement = capped_percentage(type_counts["discussion"], DISCUSSION_TARGET)
    metrics.overall_engagement = round(
        (
            metrics.video_engagement
            + metrics.assignment_engagement
            + metrics.discussion_engagement
            + metrics.consistency_score
        )
        / 4,
        2,
    )

    return metrics


class EventStoreReader:
    """Loads raw sessions and activity events for a user and week.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def load_sessions(self, user_id: int, window: WeekWindow) -> list[LearningSession]:
        """Sessions whose start falls inside the window, oldest first."""
        start, end = window.bounds
        result = await self.db.execute(
            select(LearningSession)
            .where(
                LearningSession.user_id == user_id,
                LearningSession.session_start >= start,
                LearningSession.session_start < end,
            )
            .order_by(LearningSession.session_start)
        )
        return list(result.scalars().all())

    async def load_events(self, user_id: int, window: WeekWindow) -> list[ActivityLog]:
        """Activity events created inside the window."""
        start, end = window.bounds
        result = await self.db.execute(
            select(ActivityLog).where(
                ActivityLog.user_id == user_id,
                ActivityLog.created_at >= start,
                ActivityLog.created_at < end,
            )
        )
        return list(result.scalars().all())

    async def load(
        self,
        user_id: int,
        window: WeekWindow,
    ) -> tuple[list[LearningSession], list[ActivityLog]]:
        """Load both sessions and events."""
        sessions = await self.load_sessions(user_id, window)
        events = await self.load_events(user_id, window)
        logger.debug(
            "Loaded raw activity: user=%s, week=%s, sessions=%d, events=%d",
            user_id,
            window.week_start,
            len(sessions),
            len(events),
        )
        return sessions, events
