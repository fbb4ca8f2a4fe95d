# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the at-risk listing."""

from datetime import date, datetime, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from src.domains.behavior.exceptions import InvalidRiskLevelError
from src.domains.behavior.query import (
    RISKY_LEVELS,
    AtRiskFilter,
    AtRiskQueryService,
    composite_score,
    urgency_score,
)
from src.models.intervention import InterventionStatus

LAST_CONTACT = datetime(2025, 3, 11, 10, tzinfo=timezone.utc)


def make_user(user_id: int = 42, **overrides):
    values = {
        "id": user_id,
        "full_name": "Ayşe Demir",
        "email": "ayse@example.edu",
        "student_number": "S-1042",
        "program_id": 3,
        "current_semester": 2,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def summary_row(**overrides) -> SimpleNamespace:
    values = {
        "total": 0,
        "critical": 0,
        "at_risk": 0,
        "warning": 0,
        "avg_engagement": None,
        "avg_on_time_rate": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def mock_results(week_start, summary, rows) -> list[MagicMock]:
    """Results for the week lookup, the summary and the page, in order."""
    week_result = MagicMock()
    week_result.scalar_one_or_none.return_value = week_start
    summary_result = MagicMock()
    summary_result.one.return_value = summary
    rows_result = MagicMock()
    rows_result.all.return_value = rows
    return [week_result, summary_result, rows_result]


class TestCompositeScore:
    """Tests for composite_score."""

    def test_weights(self) -> None:
        assert composite_score(50.0, 100.0, 20.0) == 56.0

    def test_rounds_to_one_place(self) -> None:
        assert composite_score(15.71, 100.0, 28.57) == 44.9


class TestUrgencyScore:
    """Tests for urgency_score."""

    @pytest.mark.parametrize(
        ("level", "open_count", "active_days", "expected"),
        [
            ("critical", 0, 0, 75),
            ("critical", 1, 5, 40),
            ("at_risk", 0, 5, 45),
            ("at_risk", 0, 2, 60),
            ("warning", 2, 1, 25),
            ("safe", 0, 3, 20),
            ("safe", 1, 3, 0),
        ],
    )
    def test_score(self, level, open_count, active_days, expected) -> None:
        assert urgency_score(level, open_count, active_days) == expected


class TestAtRiskFilter:
    """Tests for AtRiskFilter.build."""

    def test_defaults_to_risky_levels(self) -> None:
        filters = AtRiskFilter.build()

        assert filters.risk_levels == RISKY_LEVELS
        assert filters.limit == 50
        assert filters.offset == 0

    def test_risky_alias(self) -> None:
        assert AtRiskFilter.build(risk_level="risky").risk_levels == RISKY_LEVELS

    def test_all_disables_level_filter(self) -> None:
        assert AtRiskFilter.build(risk_level="all").risk_levels is None

    def test_single_level(self) -> None:
        assert AtRiskFilter.build(risk_level="safe").risk_levels == ("safe",)

    def test_unknown_level_raises(self) -> None:
        with pytest.raises(InvalidRiskLevelError):
            AtRiskFilter.build(risk_level="doomed")

    @pytest.mark.parametrize(("limit", "expected"), [(0, 1), (-5, 1), (500, 200), (25, 25)])
    def test_limit_is_clamped(self, limit: int, expected: int) -> None:
        assert AtRiskFilter.build(limit=limit).limit == expected

    def test_blank_search_is_dropped(self) -> None:
        assert AtRiskFilter.build(search="   ").search is None
        assert AtRiskFilter.build(search="  demir ").search == "demir"


class TestAtRiskQueryService:
    """Tests for AtRiskQueryService.list_at_risk."""

    async def test_no_snapshots(self, mock_db) -> None:
        """Test that an empty store yields an empty listing."""
        result = MagicMock()
        result.scalar_one_or_none.return_value = None
        mock_db.execute.return_value = result

        response = await AtRiskQueryService(mock_db).list_at_risk(AtRiskFilter.build())

        assert response.week_start is None
        assert response.students == []
        assert response.summary.total == 0
        assert response.pagination.pages == 0
        assert mock_db.execute.await_count == 1

    async def test_rows_and_summary(self, mock_db, snapshot_factory) -> None:
        """Test that rows carry the presentation scores."""
        week = date(2025, 3, 10)
        critical = snapshot_factory(
            user_id=42,
            risk_score=80,
            risk_level="critical",
            risk_factors=["low_engagement", "poor_attendance"],
            overall_engagement=10.0,
            on_time_rate=0.0,
            consistency_score=14.29,
            active_days=1,
        )
        warning = snapshot_factory(
            id=2,
            user_id=43,
            risk_score=35,
            risk_level="warning",
            overall_engagement=45.0,
            on_time_rate=80.0,
            consistency_score=57.14,
            active_days=4,
        )
        mock_db.execute.side_effect = mock_results(
            week,
            summary_row(
                total=2,
                critical=1,
                warning=1,
                avg_engagement=27.5,
                avg_on_time_rate=40.0,
            ),
            [
                (critical, make_user(42), "Computer Science", 0, None, None),
                (
                    warning,
                    make_user(43, full_name="Can Yılmaz"),
                    None,
                    1,
                    LAST_CONTACT,
                    "in_progress",
                ),
            ],
        )

        response = await AtRiskQueryService(mock_db).list_at_risk(AtRiskFilter.build(limit=1))

        assert response.week_start == week
        assert response.summary.total == 2
        assert response.summary.critical == 1
        assert response.summary.at_risk == 0
        assert response.summary.avg_engagement == 27.5
        assert response.pagination.total == 2
        assert response.pagination.pages == 2

        first, second = response.students
        assert first.user_id == 42
        assert first.program_name == "Computer Science"
        assert first.urgency_score == 75
        assert first.needs_attention is True
        assert first.composite_score == 8.3
        assert first.risk_factors == ["low_engagement", "poor_attendance"]
        assert first.last_intervention_date is None
        assert first.last_intervention_status is None

        assert second.open_interventions == 1
        assert second.last_intervention_date == LAST_CONTACT
        assert second.last_intervention_status == InterventionStatus.IN_PROGRESS
        assert second.urgency_score == 10
        assert second.needs_attention is False

    async def test_filters_reach_the_query(self, mock_db) -> None:
        """Test that program, semester and search become predicates."""
        mock_db.execute.side_effect = mock_results(date(2025, 3, 10), summary_row(), [])

        filters = AtRiskFilter.build(
            risk_level="all",
            program_id=3,
            semester=2,
            search="demir",
        )
        response = await AtRiskQueryService(mock_db).list_at_risk(filters)

        assert response.students == []
        page_sql = str(mock_db.execute.await_args_list[2].args[0])
        assert "users.program_id" in page_sql
        assert "users.current_semester" in page_sql
        assert "lower(users.full_name) LIKE lower(" in page_sql
        assert "lower(users.student_number) LIKE lower(" in page_sql
        assert "behavior_snapshots.risk_level IN" not in page_sql
        assert "ORDER BY behavior_snapshots.risk_score DESC" in page_sql

    @pytest.mark.parametrize(
        "filter_args",
        [
            {},
            {"risk_level": "all"},
            {"risk_level": "critical", "program_id": 3, "semester": 2, "search": "demir"},
        ],
    )
    async def test_total_counts_the_page_predicate(self, mock_db, filter_args) -> None:
        """Test that the count and the page share one WHERE clause."""
        mock_db.execute.side_effect = mock_results(date(2025, 3, 10), summary_row(), [])

        filters = AtRiskFilter.build(limit=5, offset=10, **filter_args)
        await AtRiskQueryService(mock_db).list_at_risk(filters)

        summary_stmt = mock_db.execute.await_args_list[1].args[0]
        page_stmt = mock_db.execute.await_args_list[2].args[0]
        summary_where = summary_stmt.whereclause.compile()
        page_where = page_stmt.whereclause.compile()
        assert str(summary_where) == str(page_where)
        assert summary_where.params == page_where.params
        assert "LIMIT" not in str(summary_stmt)
        assert "OFFSET" not in str(summary_stmt)

    async def test_last_intervention_columns_are_correlated(self, mock_db) -> None:
        mock_db.execute.side_effect = mock_results(date(2025, 3, 10), summary_row(), [])

        await AtRiskQueryService(mock_db).list_at_risk(AtRiskFilter.build())

        page_sql = str(mock_db.execute.await_args_list[2].args[0])
        assert "AS last_intervention_date" in page_sql
        assert "AS last_intervention_status" in page_sql
        assert "ORDER BY interventions.created_at DESC" in page_sql
