# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Intervention service for tracking follow-up actions on students.

This module provides the InterventionService class for:
- Intervention creation by staff
- Partial updates driven by the status state machine
- Admin-only deletion
- Listing scoped to the caller's own interventions unless admin

Status lifecycle:
    pending -> in_progress -> closed | successful | unsuccessful
    pending -> closed | successful | unsuccessful
    closed | successful | unsuccessful -> closed | successful | unsuccessful

A terminal intervention can be re-resolved but never reopened. Every
update into a terminal status stamps closed_at.
"""

import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from src.domains.intervention.audit import AuditLogger
from src.infrastructure.database.models import Intervention, User
from src.models.intervention import (
    TERMINAL_STATUSES,
    InterventionCreateRequest,
    InterventionListResponse,
    InterventionResponse,
    InterventionStatus,
    InterventionType,
    InterventionUpdateRequest,
)
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"
STUDENT_ROLE = "student"

ALLOWED_TRANSITIONS: dict[InterventionStatus, frozenset[InterventionStatus]] = {
    InterventionStatus.PENDING: frozenset({InterventionStatus.PENDING, InterventionStatus.IN_PROGRESS})
    | TERMINAL_STATUSES,
    InterventionStatus.IN_PROGRESS: frozenset({InterventionStatus.IN_PROGRESS}) | TERMINAL_STATUSES,
    # Terminal statuses can be re-resolved but not reopened.
    InterventionStatus.CLOSED: TERMINAL_STATUSES,
    InterventionStatus.SUCCESSFUL: TERMINAL_STATUSES,
    InterventionStatus.UNSUCCESSFUL: TERMINAL_STATUSES,
}


class InterventionServiceError(Exception):
    """Base exception for intervention service errors."""

    pass


class InterventionNotFoundError(InterventionServiceError):
    """Raised when an intervention is not found."""

    pass


class InterventionPermissionError(InterventionServiceError):
    """Raised when the caller may not perform the operation."""

    pass


class InterventionValidationError(InterventionServiceError):
    """Raised when a request carries nothing valid to apply."""

    pass


class InvalidStatusTransitionError(InterventionServiceError):
    """Raised when a status change is not allowed from the current status."""

    def __init__(self, current: str, requested: str) -> None:
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot change status from '{current}' to '{requested}'")


def can_transition(current: InterventionStatus, requested: InterventionStatus) -> bool:
    """Check whether a status change is allowed."""
    return requested in ALLOWED_TRANSITIONS[current]


class InterventionService:
    """Service for managing interventions.

    Mutations commit on the given session and then append an audit entry
    through the audit logger, whose failures never propagate.

    Attributes:
        db: Async database session.
        audit: Audit trail writer.
    """

    def __init__(self, db: AsyncSession, audit: AuditLogger) -> None:
        """Initialize intervention service.

        Args:
            db: Async database session.
            audit: Audit logger with its own session factory.
        """
        self.db = db
        self.audit = audit

    async def create(
        self,
        request: InterventionCreateRequest,
        actor_id: int,
        actor_role: str,
    ) -> InterventionResponse:
        """Create an intervention in pending status.

        Args:
            request: Intervention data.
            actor_id: Creating user.
            actor_role: Role of the creating user.

        Returns:
            Created intervention.

        Raises:
            InterventionPermissionError: If the actor is a student.
        """
        self._ensure_staff(actor_role)

        intervention = Intervention(
            student_id=request.student_id,
            created_by=actor_id,
            intervention_type=request.intervention_type.value,
            title=request.title,
            description=request.description,
            notes=request.notes,
            follow_up_date=request.follow_up_date,
            follow_up_required=request.follow_up_required,
            triggered_by_risk_score=request.triggered_by_risk_score,
            risk_factors=request.risk_factors,
            status=InterventionStatus.PENDING.value,
        )

        self.db.add(intervention)
        await self.db.commit()
        await self.db.refresh(intervention)

        logger.info(
            "Created intervention: id=%s, student=%s, type=%s, by=%s",
            intervention.id,
            intervention.student_id,
            intervention.intervention_type,
            actor_id,
        )

        await self._audit(actor_id, "intervention_created", intervention)
        return InterventionResponse.model_validate(intervention)

    async def list_interventions(
        self,
        actor_id: int,
        actor_role: str,
        student_id: int | None = None,
        status: InterventionStatus | None = None,
        intervention_type: InterventionType | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> InterventionListResponse:
        """List interventions, newest first, with student and creator names.

        Non-admin callers only see interventions they created.

        Raises:
            InterventionPermissionError: If the actor is a student.
        """
        self._ensure_staff(actor_role)

        query = select(Intervention)
        if actor_role != ADMIN_ROLE:
            query = query.where(Intervention.created_by == actor_id)
        if student_id is not None:
            query = query.where(Intervention.student_id == student_id)
        if status is not None:
            query = query.where(Intervention.status == status.value)
        if intervention_type is not None:
            query = query.where(Intervention.intervention_type == intervention_type.value)

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        student = aliased(User)
        creator = aliased(User)
        query = (
            query.add_columns(
                student.full_name.label("student_name"),
                creator.full_name.label("created_by_name"),
            )
            .outerjoin(student, student.id == Intervention.student_id)
            .outerjoin(creator, creator.id == Intervention.created_by)
            .order_by(Intervention.created_at.desc(), Intervention.id.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.db.execute(query)
        items = [
            InterventionResponse.model_validate(intervention).model_copy(
                update={"student_name": student_name, "created_by_name": created_by_name}
            )
            for intervention, student_name, created_by_name in result.all()
        ]

        return InterventionListResponse(items=items, total=total, limit=limit, offset=offset)

    async def update(
        self,
        intervention_id: int,
        request: InterventionUpdateRequest,
        actor_id: int,
        actor_role: str,
    ) -> InterventionResponse:
        """Apply a partial update.

        Args:
            intervention_id: Intervention to update.
            request: Fields to change; unset fields are left alone.
            actor_id: Updating user.
            actor_role: Role of the updating user.

        Returns:
            Updated intervention.

        Raises:
            InterventionPermissionError: If the actor is a student, or neither
                the creator nor an admin.
            InterventionNotFoundError: If the intervention does not exist.
            InterventionValidationError: If no fields were given.
            InvalidStatusTransitionError: If the status change is not allowed.
        """
        self._ensure_staff(actor_role)

        changes: dict[str, Any] = request.changes()
        if not changes:
            raise InterventionValidationError("No valid fields to update")

        intervention = await self._get_intervention(intervention_id)

        if actor_role != ADMIN_ROLE and intervention.created_by != actor_id:
            raise InterventionPermissionError(
                "Only the creator or an admin can update this intervention"
            )

        new_status = changes.pop("status", None)
        if new_status is not None:
            current = InterventionStatus(intervention.status)
            requested = InterventionStatus(new_status)
            if not can_transition(current, requested):
                raise InvalidStatusTransitionError(current.value, requested.value)
            intervention.status = requested.value
            if requested in TERMINAL_STATUSES:
                intervention.closed_at = utc_now()

        for field, value in changes.items():
            setattr(intervention, field, value)
        intervention.updated_at = utc_now()

        await self.db.commit()
        await self.db.refresh(intervention)

        logger.info(
            "Updated intervention: id=%s, status=%s, by=%s",
            intervention.id,
            intervention.status,
            actor_id,
        )

        await self._audit(actor_id, "intervention_updated", intervention)
        return InterventionResponse.model_validate(intervention)

    async def delete(self, intervention_id: int, actor_id: int, actor_role: str) -> None:
        """Delete an intervention.

        Raises:
            InterventionPermissionError: If the actor is not an admin.
            InterventionNotFoundError: If the intervention does not exist.
        """
        if actor_role != ADMIN_ROLE:
            raise InterventionPermissionError("Only admins can delete interventions")

        intervention = await self._get_intervention(intervention_id)

        await self.db.delete(intervention)
        await self.db.commit()

        logger.info("Deleted intervention: id=%s, by=%s", intervention_id, actor_id)

        await self._audit(actor_id, "intervention_deleted", intervention)

    # =========================================================================
    # Helper Methods
    # =========================================================================

    @staticmethod
    def _ensure_staff(actor_role: str) -> None:
        if actor_role == STUDENT_ROLE:
            raise InterventionPermissionError("Students cannot manage interventions")

    async def _get_intervention(self, intervention_id: int) -> Intervention:
        """Get an intervention by id.

        Raises:
            InterventionNotFoundError: If not found.
        """
        result = await self.db.execute(
            select(Intervention).where(Intervention.id == intervention_id)
        )
        intervention = result.scalar_one_or_none()
        if not intervention:
            raise InterventionNotFoundError(f"Intervention {intervention_id} not found")
        return intervention

    async def _audit(self, actor_id: int, action: str, intervention: Intervention) -> None:
        await self.audit.record(
            actor_id,
            action,
            {
                "intervention_id": intervention.id,
                "student_id": intervention.student_id,
            },
        )
