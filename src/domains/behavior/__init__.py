# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Behavior analytics domain.

This module turns raw learning activity into weekly behavior snapshots:
- Aggregation of sessions and activity events into weekly metrics
- Assignment, grade and attendance metrics from academic tables
- Weighted rule-based risk classification
- Idempotent snapshot storage keyed by (user, week)
- Batch runs over a cohort under a wall-clock budget
- At-risk listing and week-over-week trends

Integration with Background Tasks:
- The weekly run is the compute_behavior_snapshots task
- On-demand runs go through POST /api/v1/behavior/refresh

Usage:
    from src.domains.behavior import BatchOrchestrator

    orchestrator = BatchOrchestrator(get_session, time_budget_seconds=300)
    result = await orchestrator.run("current_week")

    from src.domains.behavior import AtRiskFilter, AtRiskQueryService

    listing = await AtRiskQueryService(db).list_at_risk(AtRiskFilter.build(risk_level="critical"))
"""

from src.domains.behavior.activity import ActivityService
from src.domains.behavior.aggregator import (
    BehaviorMetrics,
    EventStoreReader,
    WeekWindow,
    aggregate_metrics,
)
from src.domains.behavior.classifier import (
    RiskClassification,
    RiskInputs,
    classify_risk,
)
from src.domains.behavior.exceptions import (
    BehaviorServiceError,
    InvalidCohortError,
    InvalidRiskLevelError,
)
from src.domains.behavior.fetchers import (
    AssignmentMetricsFetcher,
    AttendanceMetricsFetcher,
    GradeMetricsFetcher,
)
from src.domains.behavior.orchestrator import (
    BatchOrchestrator,
    BatchRunResult,
    CohortFilter,
    CohortSelector,
    compute_user_snapshot,
)
from src.domains.behavior.query import AtRiskFilter, AtRiskQueryService
from src.domains.behavior.snapshots import SnapshotStore
from src.domains.behavior.trends import TrendService, calculate_trend

__all__ = [
    # Aggregation
    "BehaviorMetrics",
    "EventStoreReader",
    "WeekWindow",
    "aggregate_metrics",
    # Fetchers
    "AssignmentMetricsFetcher",
    "AttendanceMetricsFetcher",
    "GradeMetricsFetcher",
    # Classification
    "RiskClassification",
    "RiskInputs",
    "classify_risk",
    # Storage and batch
    "SnapshotStore",
    "BatchOrchestrator",
    "BatchRunResult",
    "CohortFilter",
    "CohortSelector",
    "compute_user_snapshot",
    # Read side
    "ActivityService",
    "AtRiskFilter",
    "AtRiskQueryService",
    "TrendService",
    "calculate_trend",
    # Exceptions
    "BehaviorServiceError",
    "InvalidCohortError",
    "InvalidRiskLevelError",
]
