# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Intervention request/response models and enumerations."""

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class InterventionType(str, Enum):
    """Kind of action taken for a student."""

    EMAIL = "email"
    MESSAGE = "message"
    MEETING = "meeting"
    CALL = "call"
    WARNING = "warning"
    SUPPORT_REFERRAL = "support_referral"
    GRADE_RECOVERY = "grade_recovery"
    SCHEDULE_CHANGE = "schedule_change"
    OTHER = "other"


class InterventionStatus(str, Enum):
    """Lifecycle status of an intervention."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    CLOSED = "closed"
    SUCCESSFUL = "successful"
    UNSUCCESSFUL = "unsuccessful"


TERMINAL_STATUSES = frozenset({
    InterventionStatus.CLOSED,
    InterventionStatus.SUCCESSFUL,
    InterventionStatus.UNSUCCESSFUL,
})

OPEN_STATUSES = frozenset({
    InterventionStatus.PENDING,
    InterventionStatus.IN_PROGRESS,
})


class InterventionCreateRequest(BaseModel):
    """Request to create an intervention."""

    student_id: int = Field(description="Student the intervention is for")
    intervention_type: InterventionType = Field(description="Kind of intervention")
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    notes: str | None = None
    follow_up_date: date | None = None
    follow_up_required: bool = False
    triggered_by_risk_score: int | None = Field(default=None, ge=0, le=100)
    risk_factors: list[str] | None = None


class InterventionUpdateRequest(BaseModel):
    """Partial update of an intervention.

    Only fields explicitly present in the request are applied.
    """

    status: InterventionStatus | None = None
    outcome_description: str | None = None
    effectiveness_rating: int | None = Field(default=None, ge=1, le=5)
    notes: str | None = None
    follow_up_date: date | None = None
    follow_up_required: bool | None = None

    def changes(self) -> dict:
        """Return only the fields the caller set.

        status and follow_up_required cannot be cleared, so an explicit null
        for either is ignored.
        """
        data = self.model_dump(exclude_unset=True)
        for key in ("status", "follow_up_required"):
            if key in data and data[key] is None:
                del data[key]
        return data


class InterventionResponse(BaseModel):
    """Intervention details."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    student_id: int
    created_by: int
    intervention_type: InterventionType
    title: str
    description: str | None
    notes: str | None
    follow_up_date: date | None
    follow_up_required: bool
    triggered_by_risk_score: int | None
    risk_factors: list[str] | None
    status: InterventionStatus
    outcome_description: str | None
    effectiveness_rating: int | None
    closed_at: datetime | None
    created_at: datetime
    updated_at: datetime
    student_name: str | None = None
    created_by_name: str | None = None


class InterventionListResponse(BaseModel):
    """Page of interventions."""

    items: list[InterventionResponse]
    total: int
    limit: int
    offset: int
