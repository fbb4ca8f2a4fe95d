# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Add behavior analytics tables.

This migration creates the tables owned by the behavior pipeline:
- learning_sessions: Raw learning sessions
- activity_logs: Raw activity events
- behavior_snapshots: Weekly aggregated metrics and risk classification
- interventions: Staff interventions for at-risk students
- audit_logs: Append-only audit trail

Revision ID: 001_behavior_tables
Revises:
Create Date: 2026-10-19
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001_behavior_tables"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=nullable,
        server_default=None if nullable else sa.text("now()"),
    )


def upgrade() -> None:
    """Create behavior tables."""

    op.create_table(
        "learning_sessions",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("subject_id", sa.Integer, nullable=True),
        sa.Column("content_type", sa.String(20), nullable=False, server_default="other"),
        sa.Column("content_id", sa.String(100), nullable=True),
        sa.Column("content_title", sa.String(255), nullable=True),
        sa.Column("session_start", sa.DateTime(timezone=True), nullable=False),
        sa.Column("session_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration_seconds", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_completed", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("metadata", postgresql.JSONB, nullable=True),
        _timestamp("created_at"),
    )
    op.create_index(
        "ix_learning_sessions_user_start",
        "learning_sessions",
        ["user_id", "session_start"],
    )

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("details", postgresql.JSONB, nullable=True),
        _timestamp("created_at"),
    )
    op.create_index(
        "ix_activity_logs_user_created",
        "activity_logs",
        ["user_id", "created_at"],
    )

    zero_default = {"nullable": False, "server_default": "0"}
    op.create_table(
        "behavior_snapshots",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("week_start", sa.Date, nullable=False),
        sa.Column("week_end", sa.Date, nullable=False),
        sa.Column("login_count", sa.Integer, **zero_default),
        sa.Column("total_session_minutes", sa.Integer, **zero_default),
        sa.Column("avg_session_minutes", sa.Float, **zero_default),
        sa.Column("max_session_minutes", sa.Integer, **zero_default),
        sa.Column("video_sessions", sa.Integer, **zero_default),
        sa.Column("video_completion_rate", sa.Float, **zero_default),
        sa.Column("assignment_sessions", sa.Integer, **zero_default),
        sa.Column("quiz_attempts", sa.Integer, **zero_default),
        sa.Column("discussion_posts", sa.Integer, **zero_default),
        sa.Column("morning_activity_pct", sa.Float, **zero_default),
        sa.Column("afternoon_activity_pct", sa.Float, **zero_default),
        sa.Column("evening_activity_pct", sa.Float, **zero_default),
        sa.Column("night_activity_pct", sa.Float, **zero_default),
        sa.Column(
            "preferred_study_time", sa.String(20), nullable=False, server_default="varied"
        ),
        sa.Column("active_days", sa.Integer, **zero_default),
        sa.Column("consistency_score", sa.Float, **zero_default),
        sa.Column("video_engagement", sa.Float, **zero_default),
        sa.Column("assignment_engagement", sa.Float, **zero_default),
        sa.Column("discussion_engagement", sa.Float, **zero_default),
        sa.Column("overall_engagement", sa.Float, **zero_default),
        sa.Column("assignments_submitted", sa.Integer, **zero_default),
        sa.Column("assignments_on_time", sa.Integer, **zero_default),
        sa.Column("on_time_rate", sa.Float, **zero_default),
        sa.Column("avg_grade", sa.Float, nullable=True),
        sa.Column("grade_trend", sa.String(20), nullable=False, server_default="stable"),
        sa.Column("attended_days", sa.Integer, **zero_default),
        sa.Column("risk_score", sa.Integer, **zero_default),
        sa.Column("risk_level", sa.String(20), nullable=False, server_default="safe"),
        sa.Column(
            "risk_factors",
            postgresql.JSONB,
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        _timestamp("calculated_at"),
        sa.UniqueConstraint("user_id", "week_start", name="uq_behavior_snapshots_user_week"),
    )
    op.create_index(
        "ix_behavior_snapshots_week_risk",
        "behavior_snapshots",
        ["week_start", "risk_score"],
    )

    op.create_table(
        "interventions",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("student_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_by", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("intervention_type", sa.String(30), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("follow_up_date", sa.Date, nullable=True),
        sa.Column(
            "follow_up_required", sa.Boolean, nullable=False, server_default=sa.false()
        ),
        sa.Column("triggered_by_risk_score", sa.Integer, nullable=True),
        sa.Column("risk_factors", postgresql.JSONB, nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("outcome_description", sa.Text, nullable=True),
        sa.Column("effectiveness_rating", sa.Integer, nullable=True),
        _timestamp("closed_at", nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.CheckConstraint(
            "effectiveness_rating IS NULL OR effectiveness_rating BETWEEN 1 AND 5",
            name="ck_interventions_effectiveness_rating",
        ),
    )
    op.create_index(
        "ix_interventions_student_status",
        "interventions",
        ["student_id", "status"],
    )
    op.create_index("ix_interventions_created_by", "interventions", ["created_by"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer, nullable=True),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("details", postgresql.JSONB, nullable=True),
        _timestamp("created_at"),
    )


def downgrade() -> None:
    """Drop behavior tables."""
    op.drop_table("audit_logs")
    op.drop_index("ix_interventions_created_by", table_name="interventions")
    op.drop_index("ix_interventions_student_status", table_name="interventions")
    op.drop_table("interventions")
    op.drop_index("ix_behavior_snapshots_week_risk", table_name="behavior_snapshots")
    op.drop_table("behavior_snapshots")
    op.drop_index("ix_activity_logs_user_created", table_name="activity_logs")
    op.drop_table("activity_logs")
    op.drop_index("ix_learning_sessions_user_start", table_name="learning_sessions")
    op.drop_table("learning_sessions")
