# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Behavior analytics models.

Tables owned by the behavior pipeline:
- learning_sessions: Raw learning sessions (event store)
- activity_logs: Raw activity events such as logins (event store)
- behavior_snapshots: One aggregated and classified row per (user, week)
- interventions: Teacher/admin actions taken for a student
- audit_logs: Append-only trail of intervention mutations
"""

from datetime import date, datetime
from typing import Any, Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, TimestampMixin
from src.utils.datetime import utc_now


class LearningSession(Base):
    """A single learning session recorded for a user."""

    __tablename__ = "learning_sessions"
    __table_args__ = (
        Index("ix_learning_sessions_user_start", "user_id", "session_start"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    subject_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    content_type: Mapped[str] = mapped_column(String(20), nullable=False, default="other")
    content_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    content_title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    session_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    session_end: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    duration_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    extra_data: Mapped[Optional[dict[str, Any]]] = mapped_column("metadata", nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False,
    )


class ActivityLog(Base):
    """A raw activity event (login, page action, etc.)."""

    __tablename__ = "activity_logs"
    __table_args__ = (
        Index("ix_activity_logs_user_created", "user_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    details: Mapped[Optional[dict[str, Any]]] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False,
    )


class WeeklyBehaviorSnapshot(Base):
    """Aggregated metrics and risk classification for one user and week.

    Identity is (user_id, week_start). Recomputation overwrites the row.
    """

    __tablename__ = "behavior_snapshots"
    __table_args__ = (
        UniqueConstraint("user_id", "week_start", name="uq_behavior_snapshots_user_week"),
        Index("ix_behavior_snapshots_week_risk", "week_start", "risk_score"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    week_start: Mapped[date] = mapped_column(Date, nullable=False)
    week_end: Mapped[date] = mapped_column(Date, nullable=False)

    # Sessions
    login_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_session_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    avg_session_minutes: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    max_session_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    video_sessions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    video_completion_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    assignment_sessions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    quiz_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    discussion_posts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Timing
    morning_activity_pct: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    afternoon_activity_pct: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    evening_activity_pct: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    night_activity_pct: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    preferred_study_time: Mapped[str] = mapped_column(
        String(20), nullable=False, default="varied"
    )
    active_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    consistency_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    # Engagement
    video_engagement: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    assignment_engagement: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    discussion_engagement: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    overall_engagement: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    # Cross-domain facts
    assignments_submitted: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    assignments_on_time: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    on_time_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    avg_grade: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    grade_trend: Mapped[str] = mapped_column(String(20), nullable=False, default="stable")
    attended_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Classification
    risk_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    risk_level: Mapped[str] = mapped_column(String(20), nullable=False, default="safe")
    risk_factors: Mapped[list[str]] = mapped_column(nullable=False, default=list)

    calculated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False,
    )


class Intervention(Base, TimestampMixin):
    """An action taken by staff to support an at-risk student."""

    __tablename__ = "interventions"
    __table_args__ = (
        Index("ix_interventions_student_status", "student_id", "status"),
        Index("ix_interventions_created_by", "created_by"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    created_by: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    intervention_type: Mapped[str] = mapped_column(String(30), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    follow_up_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    follow_up_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Point-in-time copy of the classification that prompted this intervention
    triggered_by_risk_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    risk_factors: Mapped[Optional[list[str]]] = mapped_column(nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    outcome_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    effectiveness_rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    closed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )


class AuditLog(Base):
    """Append-only audit record."""

    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    details: Mapped[Optional[dict[str, Any]]] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False,
    )
