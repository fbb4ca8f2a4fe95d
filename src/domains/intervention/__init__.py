# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Intervention domain.

Exports:
    InterventionService: Create, list, update and delete interventions.
    AuditLogger: Best-effort audit trail writer.
"""

from src.domains.intervention.audit import AuditLogger
from src.domains.intervention.service import (
    InterventionNotFoundError,
    InterventionPermissionError,
    InterventionService,
    InterventionServiceError,
    InterventionValidationError,
    InvalidStatusTransitionError,
    can_transition,
)

__all__ = [
    "AuditLogger",
    "InterventionService",
    "InterventionServiceError",
    "InterventionNotFoundError",
    "InterventionPermissionError",
    "InterventionValidationError",
    "InvalidStatusTransitionError",
    "can_transition",
]
