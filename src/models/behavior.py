# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Behavior analytics request/response models and enumerations."""

from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.models.intervention import InterventionStatus


class RiskLevel(str, Enum):
    """Categorical risk level derived from the capped risk score."""

    SAFE = "safe"
    WARNING = "warning"
    AT_RISK = "at_risk"
    CRITICAL = "critical"


class TrendDirection(str, Enum):
    """Direction of change between two measurements."""

    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


class StudyTime(str, Enum):
    """Time-of-day bucket of a learning session."""

    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    NIGHT = "night"
    VARIED = "varied"


class ContentType(str, Enum):
    """Content type of a learning session."""

    VIDEO = "video"
    READING = "reading"
    ASSIGNMENT = "assignment"
    QUIZ = "quiz"
    DISCUSSION = "discussion"
    PAGE_VIEW = "page_view"
    OTHER = "other"


# ============================================================================
# Recompute
# ============================================================================


class RefreshRequest(BaseModel):
    """On-demand recompute request."""

    cohort: str | int = Field(
        default="all",
        description="'all', 'current_week', or a single user id",
    )
    week_start: date | None = Field(
        default=None,
        description="Any day of the target week; defaults to the current week",
    )


class RefreshResponse(BaseModel):
    """Outcome of a recompute run."""

    cohort: str = Field(description="Cohort that was processed")
    week_start: date = Field(description="Monday of the processed week")
    week_end: date = Field(description="Sunday of the processed week")
    processed: int = Field(description="Users successfully processed")
    errors: int = Field(description="Users that failed")
    elapsed_seconds: float = Field(description="Wall-clock duration of the run")
    truncated: bool = Field(description="Whether the time budget stopped the run early")
    error: str | None = Field(default=None, description="Why the run was rejected, if it was")


# ============================================================================
# Snapshots and trends
# ============================================================================


class SnapshotResponse(BaseModel):
    """Weekly behavior snapshot."""

    model_config = ConfigDict(from_attributes=True)

    user_id: int
    week_start: date
    week_end: date
    login_count: int
    total_session_minutes: int
    avg_session_minutes: float
    max_session_minutes: int
    video_sessions: int
    video_completion_rate: float
    assignment_sessions: int
    quiz_attempts: int
    discussion_posts: int
    morning_activity_pct: float
    afternoon_activity_pct: float
    evening_activity_pct: float
    night_activity_pct: float
    preferred_study_time: StudyTime
    active_days: int
    consistency_score: float
    video_engagement: float
    assignment_engagement: float
    discussion_engagement: float
    overall_engagement: float
    assignments_submitted: int
    assignments_on_time: int
    on_time_rate: float
    avg_grade: float | None
    grade_trend: TrendDirection
    attended_days: int
    risk_score: int
    risk_level: RiskLevel
    risk_factors: list[str]
    calculated_at: datetime


class TrendSummary(BaseModel):
    """Direction of change between the two most recent snapshots."""

    engagement: TrendDirection = Field(description="Overall engagement trend")
    activity: TrendDirection = Field(description="Login count trend")
    consistency: TrendDirection = Field(description="Consistency score trend")
    risk: TrendDirection = Field(description="Risk trend (a falling score is improving)")


class PatternHistoryResponse(BaseModel):
    """Snapshot history for one user."""

    user_id: int = Field(description="User the history belongs to")
    weeks: int = Field(description="Number of weeks requested")
    history: list[SnapshotResponse] = Field(description="Snapshots, newest first")
    current: SnapshotResponse | None = Field(description="Most recent snapshot")
    trends: TrendSummary | None = Field(description="Present when two snapshots exist")


# ============================================================================
# At-risk listing
# ============================================================================


class AtRiskStudent(BaseModel):
    """A ranked student row in the at-risk listing."""

    user_id: int
    full_name: str
    email: str
    student_number: str | None
    program_id: int | None
    program_name: str | None
    current_semester: int | None
    week_start: date
    risk_score: int
    risk_level: RiskLevel
    risk_factors: list[str]
    overall_engagement: float
    on_time_rate: float
    consistency_score: float
    active_days: int
    login_count: int
    attended_days: int
    avg_grade: float | None
    grade_trend: TrendDirection
    calculated_at: datetime
    open_interventions: int = Field(description="Pending or in-progress interventions")
    last_intervention_date: datetime | None = Field(
        default=None, description="When the most recent intervention was created"
    )
    last_intervention_status: InterventionStatus | None = Field(
        default=None, description="Status of the most recent intervention"
    )
    composite_score: float = Field(description="Presentation-only blended score")
    urgency_score: int = Field(description="Presentation-only re-ranking score")
    needs_attention: bool = Field(description="urgency_score >= 50")


class AtRiskSummary(BaseModel):
    """Aggregate counts over the filtered set."""

    total: int
    critical: int
    at_risk: int
    warning: int
    avg_engagement: float
    avg_on_time_rate: float


class Pagination(BaseModel):
    """Offset pagination metadata."""

    total: int
    limit: int
    offset: int
    pages: int


class AtRiskListResponse(BaseModel):
    """Paginated at-risk listing."""

    week_start: date | None = Field(description="Week the listing is drawn from")
    students: list[AtRiskStudent]
    summary: AtRiskSummary
    pagination: Pagination


# ============================================================================
# Activity logging
# ============================================================================


class ActivityLogRequest(BaseModel):
    """Record a learning session for the calling user."""

    action: str = Field(min_length=1, max_length=100, description="What the user did")
    content_type: str = Field(min_length=1, description="Content type of the session")
    subject_id: int | None = None
    content_id: str | None = Field(default=None, max_length=100)
    content_title: str | None = Field(default=None, max_length=255)
    session_start: datetime | None = Field(default=None, description="Defaults to now")
    session_end: datetime | None = Field(
        default=None,
        description="Used to derive duration when duration_seconds is not given",
    )
    duration_seconds: int | None = Field(default=None, ge=0)
    is_completed: bool = False
    metadata: dict[str, Any] | None = None

    @field_validator("content_type")
    @classmethod
    def normalize_content_type(cls, value: str) -> str:
        """Map unknown content types to 'other'."""
        valid = {item.value for item in ContentType}
        return value if value in valid else ContentType.OTHER.value


class ActivityLogResponse(BaseModel):
    """Result of logging a session."""

    session_id: int
    message: str = "Activity logged successfully"


class SessionResponse(BaseModel):
    """A learning session."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    subject_id: int | None
    content_type: str
    content_id: str | None
    content_title: str | None
    session_start: datetime
    session_end: datetime | None
    duration_seconds: int
    is_completed: bool


class SessionSummary(BaseModel):
    """Summary statistics over a session history window."""

    total_sessions: int
    total_minutes: float
    avg_minutes: float
    unique_days: int
    video_sessions: int
    assignment_sessions: int
    quiz_sessions: int
    discussion_sessions: int


class SessionPagination(Pagination):
    """Pagination plus the lookback window."""

    weeks: int


class SessionHistoryResponse(BaseModel):
    """Session history for one user."""

    user_id: int
    sessions: list[SessionResponse]
    summary: SessionSummary
    pagination: SessionPagination
