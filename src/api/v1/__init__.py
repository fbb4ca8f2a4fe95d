# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API v1 routes package.

This package contains all v1 API endpoint definitions.
Each module provides a FastAPI router for a specific domain.

Modules:
    behavior: Snapshot refresh, at-risk listing, history and session logging.
    interventions: Intervention create, list, update and delete.
"""

from fastapi import APIRouter

from src.api.v1 import behavior, interventions

# Create the main v1 router
router = APIRouter(prefix="/api/v1")

# Include domain routers
router.include_router(behavior.router, prefix="/behavior", tags=["Behavior Analytics"])
router.include_router(interventions.router, prefix="/interventions", tags=["Interventions"])

__all__ = ["router"]
