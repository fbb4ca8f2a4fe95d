# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for cross-domain metric fetchers.

These tests mock database results.
"""

from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from src.domains.behavior.aggregator import WeekWindow
from src.domains.behavior.fetchers import (
    AssignmentMetrics,
    AssignmentMetricsFetcher,
    AttendanceMetricsFetcher,
    GradeMetricsFetcher,
    grade_trend,
    on_time_rate,
)
from src.models.behavior import TrendDirection

WINDOW = WeekWindow(date(2025, 3, 10))


def scalar(value) -> MagicMock:
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    return result


class TestOnTimeRate:
    """Tests for on_time_rate."""

    def test_no_submissions_is_zero(self) -> None:
        assert on_time_rate(0, 0) == 0.0

    def test_rounds_to_two_places(self) -> None:
        assert on_time_rate(3, 2) == 66.67

    def test_all_on_time(self) -> None:
        assert on_time_rate(1, 1) == 100.0


class TestGradeTrend:
    """Tests for grade_trend."""

    @pytest.mark.parametrize(
        ("current", "previous", "expected"),
        [
            (80.0, 70.0, TrendDirection.IMPROVING),
            (75.0, 70.0, TrendDirection.STABLE),
            (65.0, 70.0, TrendDirection.STABLE),
            (64.9, 70.0, TrendDirection.DECLINING),
            (None, 70.0, TrendDirection.STABLE),
            (70.0, None, TrendDirection.STABLE),
            (10.0, 0.0, TrendDirection.STABLE),
            (0.0, 70.0, TrendDirection.STABLE),
        ],
    )
    def test_threshold(self, current, previous, expected) -> None:
        """Test the five-point threshold and missing or zero averages."""
        assert grade_trend(current, previous) == expected


class TestAssignmentMetricsFetcher:
    """Tests for AssignmentMetricsFetcher."""

    async def test_counts_and_rate(self, mock_db) -> None:
        """Test that row counts become metrics."""
        result = MagicMock()
        result.one_or_none.return_value = MagicMock(submitted=4, on_time=3)
        mock_db.execute.return_value = result

        metrics = await AssignmentMetricsFetcher(mock_db).fetch(42, WINDOW)

        assert metrics.assignments_submitted == 4
        assert metrics.assignments_on_time == 3
        assert metrics.on_time_rate == 75.0

    async def test_no_rows_yields_defaults(self, mock_db) -> None:
        """Test neutral defaults when nothing matches."""
        result = MagicMock()
        result.one_or_none.return_value = None
        mock_db.execute.return_value = result

        metrics = await AssignmentMetricsFetcher(mock_db).fetch(42, WINDOW)

        assert metrics == AssignmentMetrics()


class TestGradeMetricsFetcher:
    """Tests for GradeMetricsFetcher."""

    async def test_declining_grades(self, mock_db) -> None:
        """Test current versus previous week averages."""
        mock_db.execute.side_effect = [scalar(Decimal("61.255")), scalar(Decimal("72.0"))]

        metrics = await GradeMetricsFetcher(mock_db).fetch(42, WINDOW)

        assert metrics.avg_grade == pytest.approx(61.26, abs=0.01)
        assert metrics.grade_trend == "declining"

    async def test_no_grades(self, mock_db) -> None:
        """Test that missing grades are stable with no average."""
        mock_db.execute.side_effect = [scalar(None), scalar(None)]

        metrics = await GradeMetricsFetcher(mock_db).fetch(42, WINDOW)

        assert metrics.avg_grade is None
        assert metrics.grade_trend == "stable"


class TestAttendanceMetricsFetcher:
    """Tests for AttendanceMetricsFetcher."""

    async def test_attended_days(self, mock_db) -> None:
        mock_db.execute.return_value = scalar(3)

        metrics = await AttendanceMetricsFetcher(mock_db).fetch(42, WINDOW)

        assert metrics.attended_days == 3

    async def test_no_attendance(self, mock_db) -> None:
        mock_db.execute.return_value = scalar(None)

        metrics = await AttendanceMetricsFetcher(mock_db).fetch(42, WINDOW)

        assert metrics.to_dict() == {"attended_days": 0}
