# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Weighted rule-based risk classification.

Seven independent factors each add a fixed weight when their predicate
holds. The weights sum to 105, so the total is capped at 100 before the
level is derived:

    score >= 70  critical
    score >= 50  at_risk
    score >= 30  warning
    otherwise    safe

classify_risk is pure and deterministic.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, NamedTuple

from src.models.behavior import RiskLevel, TrendDirection

MAX_RISK_SCORE = 100


@dataclass(frozen=True)
class RiskInputs:
    """Merged metrics the classifier reads."""

    overall_engagement: float = 0.0
    on_time_rate: float = 0.0
    assignments_submitted: int = 0
    attended_days: int = 0
    login_count: int = 0
    consistency_score: float = 0.0
    grade_trend: str = TrendDirection.STABLE.value

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "RiskInputs":
        """Build from a merged metrics dictionary, ignoring unknown keys."""
        return cls(**{name: data[name] for name in cls.__dataclass_fields__ if name in data})


class RiskRule(NamedTuple):
    """A named predicate with its weight."""

    name: str
    weight: int
    predicate: Callable[[RiskInputs], bool]


RISK_RULES: tuple[RiskRule, ...] = (
    RiskRule("low_engagement", 20, lambda m: m.overall_engagement < 50),
    # Lateness only applies once something was submitted, so an empty
    # week scores 80 rather than 95.
    RiskRule(
        "late_submissions",
        15,
        lambda m: m.assignments_submitted > 0 and m.on_time_rate < 70,
    ),
    RiskRule("missing_assignments", 15, lambda m: m.assignments_submitted < 2),
    RiskRule("poor_attendance", 20, lambda m: m.attended_days < 3),
    RiskRule("low_activity", 15, lambda m: m.login_count < 3),
    RiskRule("inconsistent_behavior", 10, lambda m: m.consistency_score < 40),
    RiskRule(
        "declining_grades",
        10,
        lambda m: m.grade_trend == TrendDirection.DECLINING.value,
    ),
)

LEVEL_THRESHOLDS: tuple[tuple[int, RiskLevel], ...] = (
    (70, RiskLevel.CRITICAL),
    (50, RiskLevel.AT_RISK),
    (30, RiskLevel.WARNING),
)


@dataclass(frozen=True)
class RiskClassification:
    """Outcome of classifying one week of metrics."""

    risk_score: int
    risk_level: RiskLevel
    risk_factors: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "risk_score": self.risk_score,
            "risk_level": self.risk_level.value,
            "risk_factors": list(self.risk_factors),
        }


def risk_level_for(score: int) -> RiskLevel:
    """Map a (capped) risk score to its level."""
    for threshold, level in LEVEL_THRESHOLDS:
        if score >= threshold:
            return level
    return RiskLevel.SAFE


def classify_risk(inputs: RiskInputs) -> RiskClassification:
    """Score metrics against the weighted rule set.

    Args:
        inputs: Merged weekly metrics.

    Returns:
        RiskClassification with the capped score, level and triggered factors
        in rule order.
    """
    triggered = [rule for rule in RISK_RULES if rule.predicate(inputs)]
    raw_score = sum(rule.weight for rule in triggered)
    score = min(MAX_RISK_SCORE, raw_score)
    return RiskClassification(
        risk_score=score,
        risk_level=risk_level_for(score),
        risk_factors=tuple(rule.name for rule in triggered),
    )
