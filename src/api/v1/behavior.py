# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Behavior analytics API endpoints.

This module provides endpoints for weekly behavior analytics:
- POST /refresh - Recompute snapshots for a cohort (admin)
- GET /at-risk - Ranked at-risk student listing (staff)
- GET /patterns - Snapshot history and trends for a user
- POST /activity - Log a learning session for the caller
- GET /sessions - Learning session history for a user

Example:
    GET /api/v1/behavior/at-risk?risk_level=critical&limit=20
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import (
    SessionFactory,
    get_db,
    get_session_factory,
    require_admin,
    require_auth,
    require_staff,
)
from src.api.middleware.auth import CurrentUser
from src.core.config import get_settings
from src.domains.behavior import (
    ActivityService,
    AtRiskFilter,
    AtRiskQueryService,
    BatchOrchestrator,
    InvalidRiskLevelError,
    TrendService,
)
from src.models.behavior import (
    ActivityLogRequest,
    ActivityLogResponse,
    AtRiskListResponse,
    PatternHistoryResponse,
    RefreshRequest,
    RefreshResponse,
    SessionHistoryResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _ensure_can_view(current_user: CurrentUser, user_id: int) -> None:
    if not current_user.can_view_user(user_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Cannot view other users' behavior data",
        )


@router.post(
    "/refresh",
    response_model=RefreshResponse,
    summary="Recompute behavior snapshots",
    description="Synchronously recompute weekly snapshots for a cohort. Admin only.",
)
async def refresh_snapshots(
    request: RefreshRequest,
    response: Response,
    current_user: CurrentUser = Depends(require_admin),
    session_factory: SessionFactory = Depends(get_session_factory),
) -> RefreshResponse:
    """Recompute snapshots for 'all', 'current_week' or a single user.

    An invalid cohort is answered with status 400 and a result carrying
    processed=0, errors=1 and the reason.
    """
    settings = get_settings().behavior
    orchestrator = BatchOrchestrator(
        session_factory,
        time_budget_seconds=settings.request_time_budget_seconds,
        tz_name=settings.timezone,
    )

    logger.info(
        "On-demand snapshot refresh: cohort=%s, by=%s",
        request.cohort,
        current_user.id,
    )
    result = await orchestrator.run(request.cohort, request.week_start)
    if result.error is not None:
        response.status_code = status.HTTP_400_BAD_REQUEST

    return RefreshResponse(
        cohort=result.cohort,
        week_start=result.week_start,
        week_end=result.week_end,
        processed=result.processed,
        errors=result.errors,
        elapsed_seconds=result.elapsed_seconds,
        truncated=result.truncated,
        error=result.error,
    )


@router.get(
    "/at-risk",
    response_model=AtRiskListResponse,
    summary="List at-risk students",
    description="Students from the latest snapshot week ranked by risk score.",
)
async def list_at_risk_students(
    risk_level: str | None = Query(
        default=None,
        description="critical, at_risk, warning, safe, all or risky (default)",
    ),
    program_id: int | None = Query(default=None),
    semester: int | None = Query(default=None),
    search: str | None = Query(default=None, description="Name, email or student number"),
    limit: int | None = Query(default=None, description="Page size, clamped to 1..200"),
    offset: int = Query(default=0),
    current_user: CurrentUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> AtRiskListResponse:
    """Ranked, filtered and paginated at-risk listing.

    Raises:
        HTTPException: 400 if risk_level is unknown.
    """
    settings = get_settings().behavior
    try:
        filters = AtRiskFilter.build(
            risk_level=risk_level,
            program_id=program_id,
            semester=semester,
            search=search,
            limit=limit,
            offset=offset,
            default_limit=settings.at_risk_default_limit,
            max_limit=settings.at_risk_max_limit,
        )
    except InvalidRiskLevelError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )

    return await AtRiskQueryService(db).list_at_risk(filters)


@router.get(
    "/patterns",
    response_model=PatternHistoryResponse,
    summary="Get behavior history",
    description="Weekly snapshots, newest first, with week-over-week trends.",
)
async def get_behavior_patterns(
    user_id: int | None = Query(default=None, description="Defaults to the caller"),
    weeks: int | None = Query(default=None, ge=1, description="Weeks of history"),
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> PatternHistoryResponse:
    """Snapshot history for a user. Students may only read their own."""
    target_id = user_id if user_id is not None else current_user.id
    _ensure_can_view(current_user, target_id)

    settings = get_settings().behavior
    service = TrendService(
        db,
        default_weeks=settings.history_default_weeks,
        max_weeks=settings.history_max_weeks,
    )
    return await service.get_history(target_id, weeks)


@router.post(
    "/activity",
    response_model=ActivityLogResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Log learning activity",
)
async def log_activity(
    request: ActivityLogRequest,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> ActivityLogResponse:
    """Record a learning session for the caller."""
    session = await ActivityService(db).log_session(current_user.id, request)
    return ActivityLogResponse(session_id=session.id)


@router.get(
    "/sessions",
    response_model=SessionHistoryResponse,
    summary="Get learning session history",
)
async def get_sessions(
    user_id: int | None = Query(default=None, description="Defaults to the caller"),
    weeks: int | None = Query(default=None, ge=1),
    limit: int | None = Query(default=None, ge=1),
    offset: int = Query(default=0, ge=0),
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> SessionHistoryResponse:
    """Session history with summary statistics. Students may only read their own."""
    target_id = user_id if user_id is not None else current_user.id
    _ensure_can_view(current_user, target_id)

    settings = get_settings().behavior
    page_size = min(limit or 100, settings.session_history_max_limit)

    return await ActivityService(db).session_history(
        target_id,
        weeks=weeks or settings.session_history_default_weeks,
        limit=page_size,
        offset=offset,
    )
