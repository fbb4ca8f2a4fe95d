# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Behavior analytics exceptions."""


class BehaviorServiceError(Exception):
    """Base exception for behavior analytics operations."""

    pass


class InvalidCohortError(BehaviorServiceError):
    """Raised when a cohort specification cannot be parsed."""

    def __init__(self, cohort: object) -> None:
        self.cohort = cohort
        super().__init__(
            f"Invalid cohort: {cohort!r}. Use 'all', 'current_week' or a user id"
        )


class InvalidRiskLevelError(BehaviorServiceError):
    """Raised when an at-risk filter names an unknown risk level."""

    def __init__(self, risk_level: str) -> None:
        self.risk_level = risk_level
        super().__init__(f"Invalid risk level: {risk_level}")

