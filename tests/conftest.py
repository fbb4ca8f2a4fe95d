# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- Unit tests
- Integration tests
"""

import os
from datetime import date, datetime, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

# Must be set before any module that builds the Dramatiq broker is imported
os.environ.setdefault("DRAMATIQ_TEST_MODE", "true")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-testing-only")
os.environ.setdefault("BEHAVIOR_SCHEDULER_ENABLED", "false")

from src.core.config import clear_settings_cache  # noqa: E402
from src.infrastructure.database.models import WeeklyBehaviorSnapshot  # noqa: E402


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Reload settings from the environment for every test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
def mock_db():
    """Create mock database session."""
    db = AsyncMock()
    db.add = MagicMock()
    db.delete = AsyncMock()
    db.flush = AsyncMock()
    db.commit = AsyncMock()
    db.refresh = AsyncMock()
    db.execute = AsyncMock()
    return db


# =============================================================================
# Helper Fixtures
# =============================================================================


def make_snapshot(**overrides: Any) -> WeeklyBehaviorSnapshot:
    """Build a detached snapshot row with neutral values."""
    values: dict[str, Any] = {
        "id": 1,
        "user_id": 42,
        "week_start": date(2025, 3, 10),
        "week_end": date(2025, 3, 16),
        "login_count": 0,
        "total_session_minutes": 0,
        "avg_session_minutes": 0.0,
        "max_session_minutes": 0,
        "video_sessions": 0,
        "video_completion_rate": 0.0,
        "assignment_sessions": 0,
        "quiz_attempts": 0,
        "discussion_posts": 0,
        "morning_activity_pct": 0.0,
        "afternoon_activity_pct": 0.0,
        "evening_activity_pct": 0.0,
        "night_activity_pct": 0.0,
        "preferred_study_time": "varied",
        "active_days": 0,
        "consistency_score": 0.0,
        "video_engagement": 0.0,
        "assignment_engagement": 0.0,
        "discussion_engagement": 0.0,
        "overall_engagement": 0.0,
        "assignments_submitted": 0,
        "assignments_on_time": 0,
        "on_time_rate": 0.0,
        "avg_grade": None,
        "grade_trend": "stable",
        "attended_days": 0,
        "risk_score": 0,
        "risk_level": "safe",
        "risk_factors": [],
        "calculated_at": datetime(2025, 3, 16, 23, 0, tzinfo=timezone.utc),
    }
    values.update(overrides)
    return WeeklyBehaviorSnapshot(**values)


@pytest.fixture
def sample_student_id() -> int:
    """Provide a sample student ID for testing."""
    return 42


@pytest.fixture
def sample_teacher_id() -> int:
    """Provide a sample teacher ID for testing."""
    return 7


@pytest.fixture
def snapshot_factory():
    """Factory for detached snapshot rows."""
    return make_snapshot
