# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""ORM models.

- base: Declarative base and mixins
- academic: Read-only reference models for academic tables
- behavior: Tables owned by the behavior pipeline
"""

from src.infrastructure.database.models.academic import (
    Assignment,
    AssignmentSubmission,
    Enrollment,
    Program,
    StudentAttendance,
    StudentGrade,
    User,
)
from src.infrastructure.database.models.base import Base, TimestampMixin
from src.infrastructure.database.models.behavior import (
    ActivityLog,
    AuditLog,
    Intervention,
    LearningSession,
    WeeklyBehaviorSnapshot,
)

__all__ = [
    "Base",
    "TimestampMixin",
    # Academic
    "Program",
    "User",
    "Enrollment",
    "Assignment",
    "AssignmentSubmission",
    "StudentGrade",
    "StudentAttendance",
    # Behavior
    "LearningSession",
    "ActivityLog",
    "WeeklyBehaviorSnapshot",
    "Intervention",
    "AuditLog",
]
