# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for weighted risk classification."""

import pytest

from src.domains.behavior.classifier import (
    MAX_RISK_SCORE,
    RISK_RULES,
    RiskInputs,
    classify_risk,
    risk_level_for,
)
from src.models.behavior import RiskLevel

# Inputs that trigger no factor at all
HEALTHY = RiskInputs(
    overall_engagement=80.0,
    on_time_rate=100.0,
    assignments_submitted=4,
    attended_days=5,
    login_count=6,
    consistency_score=71.43,
    grade_trend="stable",
)


def with_changes(**changes) -> RiskInputs:
    data = {name: getattr(HEALTHY, name) for name in RiskInputs.__dataclass_fields__}
    data.update(changes)
    return RiskInputs(**data)


class TestRiskLevelFor:
    """Tests for score to level mapping."""

    @pytest.mark.parametrize(
        ("score", "expected"),
        [
            (0, RiskLevel.SAFE),
            (29, RiskLevel.SAFE),
            (30, RiskLevel.WARNING),
            (49, RiskLevel.WARNING),
            (50, RiskLevel.AT_RISK),
            (69, RiskLevel.AT_RISK),
            (70, RiskLevel.CRITICAL),
            (100, RiskLevel.CRITICAL),
        ],
    )
    def test_threshold_boundaries(self, score: int, expected: RiskLevel) -> None:
        """Test each boundary of the level thresholds."""
        assert risk_level_for(score) == expected


class TestClassifyRisk:
    """Tests for classify_risk."""

    def test_healthy_inputs_are_safe(self) -> None:
        """Test that no factor fires for healthy metrics."""
        result = classify_risk(HEALTHY)

        assert result.risk_score == 0
        assert result.risk_level == RiskLevel.SAFE
        assert result.risk_factors == ()

    def test_zero_input_is_critical(self) -> None:
        """Test the all-zero week."""
        result = classify_risk(RiskInputs())

        assert result.risk_score == 80
        assert result.risk_level == RiskLevel.CRITICAL
        assert result.risk_factors == (
            "low_engagement",
            "missing_assignments",
            "poor_attendance",
            "low_activity",
            "inconsistent_behavior",
        )

    def test_late_submissions_needs_a_submission(self) -> None:
        """Test that on_time_rate alone does not flag lateness."""
        assert "late_submissions" not in classify_risk(
            with_changes(assignments_submitted=0, on_time_rate=0.0)
        ).risk_factors
        assert "late_submissions" in classify_risk(
            with_changes(assignments_submitted=3, on_time_rate=66.67)
        ).risk_factors

    def test_worked_example(self) -> None:
        """Test the two-day week with one on-time submission."""
        inputs = RiskInputs(
            overall_engagement=15.71,
            on_time_rate=100.0,
            assignments_submitted=1,
            attended_days=2,
            login_count=4,
            consistency_score=28.57,
            grade_trend="stable",
        )

        result = classify_risk(inputs)

        assert result.risk_score == 65
        assert result.risk_level == RiskLevel.AT_RISK
        assert result.risk_factors == (
            "low_engagement",
            "missing_assignments",
            "poor_attendance",
            "inconsistent_behavior",
        )

    def test_score_is_capped(self) -> None:
        """Test that all seven factors together still score 100."""
        inputs = RiskInputs(
            overall_engagement=0.0,
            on_time_rate=0.0,
            assignments_submitted=1,
            attended_days=0,
            login_count=0,
            consistency_score=0.0,
            grade_trend="declining",
        )

        result = classify_risk(inputs)

        assert sum(rule.weight for rule in RISK_RULES) == 105
        assert len(result.risk_factors) == 7
        assert result.risk_score == MAX_RISK_SCORE
        assert result.risk_level == RiskLevel.CRITICAL

    @pytest.mark.parametrize(
        ("changes", "factor"),
        [
            ({"overall_engagement": 49.99}, "low_engagement"),
            ({"on_time_rate": 69.99}, "late_submissions"),
            ({"assignments_submitted": 1}, "missing_assignments"),
            ({"attended_days": 2}, "poor_attendance"),
            ({"login_count": 2}, "low_activity"),
            ({"consistency_score": 39.99}, "inconsistent_behavior"),
            ({"grade_trend": "declining"}, "declining_grades"),
        ],
    )
    def test_each_factor_fires_alone(self, changes: dict, factor: str) -> None:
        """Test each predicate in isolation."""
        result = classify_risk(with_changes(**changes))

        assert result.risk_factors == (factor,)

    @pytest.mark.parametrize(
        "changes",
        [
            {"overall_engagement": 50.0},
            {"on_time_rate": 70.0},
            {"assignments_submitted": 2},
            {"attended_days": 3},
            {"login_count": 3},
            {"consistency_score": 40.0},
            {"grade_trend": "improving"},
        ],
    )
    def test_factor_thresholds_are_strict(self, changes: dict) -> None:
        """Test that values exactly at a threshold do not fire."""
        assert classify_risk(with_changes(**changes)).risk_factors == ()

    def test_deterministic(self) -> None:
        """Test that identical inputs give identical results."""
        inputs = with_changes(login_count=0, attended_days=1)

        assert classify_risk(inputs) == classify_risk(inputs)

    def test_to_dict(self) -> None:
        """Test serialization of the classification."""
        data = classify_risk(RiskInputs()).to_dict()

        assert data["risk_score"] == 80
        assert data["risk_level"] == "critical"
        assert isinstance(data["risk_factors"], list)


class TestRiskInputs:
    """Tests for RiskInputs."""

    def test_from_mapping_ignores_unknown_keys(self) -> None:
        """Test that merged metric dicts can be passed as-is."""
        inputs = RiskInputs.from_mapping(
            {"login_count": 5, "video_sessions": 3, "grade_trend": "declining"}
        )

        assert inputs.login_count == 5
        assert inputs.grade_trend == "declining"
        assert inputs.overall_engagement == 0.0
