# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Intervention API endpoints.

This module provides endpoints for managing interventions:
- POST / - Create intervention (staff)
- GET / - List interventions (own for teachers, all for admins)
- PATCH /{intervention_id} - Update intervention (creator or admin)
- DELETE /{intervention_id} - Delete intervention (admin)

Students are rejected on every endpoint.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import (
    SessionFactory,
    get_db,
    get_session_factory,
    require_staff,
)
from src.api.middleware.auth import CurrentUser
from src.core.config import get_settings
from src.domains.intervention import (
    AuditLogger,
    InterventionNotFoundError,
    InterventionPermissionError,
    InterventionService,
    InterventionValidationError,
    InvalidStatusTransitionError,
)
from src.models.intervention import (
    InterventionCreateRequest,
    InterventionListResponse,
    InterventionResponse,
    InterventionStatus,
    InterventionType,
    InterventionUpdateRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_service(db: AsyncSession, session_factory: SessionFactory) -> InterventionService:
    """Create intervention service instance."""
    return InterventionService(db, AuditLogger(session_factory))


@router.post(
    "",
    response_model=InterventionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create intervention",
)
async def create_intervention(
    request: InterventionCreateRequest,
    current_user: CurrentUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
    session_factory: SessionFactory = Depends(get_session_factory),
) -> InterventionResponse:
    """Create an intervention in pending status."""
    service = _get_service(db, session_factory)
    try:
        return await service.create(request, current_user.id, current_user.role)
    except InterventionPermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))


@router.get(
    "",
    response_model=InterventionListResponse,
    summary="List interventions",
)
async def list_interventions(
    student_id: int | None = Query(default=None),
    status_filter: InterventionStatus | None = Query(default=None, alias="status"),
    type_filter: InterventionType | None = Query(default=None, alias="type"),
    limit: int | None = Query(default=None, ge=1),
    offset: int = Query(default=0, ge=0),
    current_user: CurrentUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
    session_factory: SessionFactory = Depends(get_session_factory),
) -> InterventionListResponse:
    """List interventions, newest first."""
    settings = get_settings().behavior
    page_size = min(limit or settings.intervention_default_limit, settings.intervention_max_limit)

    service = _get_service(db, session_factory)
    try:
        return await service.list_interventions(
            current_user.id,
            current_user.role,
            student_id=student_id,
            status=status_filter,
            intervention_type=type_filter,
            limit=page_size,
            offset=offset,
        )
    except InterventionPermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))


@router.patch(
    "/{intervention_id}",
    response_model=InterventionResponse,
    summary="Update intervention",
)
async def update_intervention(
    intervention_id: int,
    request: InterventionUpdateRequest,
    current_user: CurrentUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
    session_factory: SessionFactory = Depends(get_session_factory),
) -> InterventionResponse:
    """Apply a partial update.

    Raises:
        HTTPException: 400 for an empty update, 403 if not allowed,
            404 if not found, 409 for a disallowed status change.
    """
    service = _get_service(db, session_factory)
    try:
        return await service.update(
            intervention_id,
            request,
            current_user.id,
            current_user.role,
        )
    except InterventionValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except InterventionPermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except InterventionNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Intervention not found",
        )
    except InvalidStatusTransitionError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.delete(
    "/{intervention_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete intervention",
)
async def delete_intervention(
    intervention_id: int,
    current_user: CurrentUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
    session_factory: SessionFactory = Depends(get_session_factory),
) -> None:
    """Delete an intervention. Admin only."""
    service = _get_service(db, session_factory)
    try:
        await service.delete(intervention_id, current_user.id, current_user.role)
    except InterventionPermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except InterventionNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Intervention not found",
        )
