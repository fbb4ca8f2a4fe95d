# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Behavior analytics background tasks.

Available actors:
- compute_behavior_snapshots: Weekly snapshot run over a cohort
"""

import logging
from datetime import date
from typing import Any
from uuid import uuid4

import dramatiq

from src.core.config import get_settings
from src.domains.behavior import BatchOrchestrator
from src.infrastructure.background.broker import Priority, Queues, setup_dramatiq
from src.infrastructure.background.tasks.base import run_async
from src.infrastructure.database.connection import get_worker_session
from src.utils.logging import bind_context, clear_context

# Setup broker before defining actors
setup_dramatiq()

logger = logging.getLogger(__name__)

# Added to the run budget to form the actor's hard time limit
_TIME_LIMIT_MARGIN_SECONDS = 300


@dramatiq.actor(
    queue_name=Queues.BEHAVIOR,
    max_retries=1,
    time_limit=int(
        (get_settings().behavior.batch_time_budget_seconds + _TIME_LIMIT_MARGIN_SECONDS) * 1000
    ),
    priority=Priority.LOW,
)
def compute_behavior_snapshots(
    cohort: str | int = "all",
    week_start: str | None = None,
) -> dict[str, Any]:
    """Compute weekly behavior snapshots for a cohort.

    Args:
        cohort: 'all', 'current_week', or a user id.
        week_start: ISO date inside the target week. Defaults to the current week.

    Returns:
        Batch run result as a dictionary.

    Example:
        compute_behavior_snapshots.send("all")
        compute_behavior_snapshots.send(42, week_start="2025-03-10")
    """

    async def _execute() -> dict[str, Any]:
        settings = get_settings().behavior
        orchestrator = BatchOrchestrator(
            get_worker_session,
            time_budget_seconds=settings.batch_time_budget_seconds,
            tz_name=settings.timezone,
        )
        target = date.fromisoformat(week_start) if week_start else None
        result = await orchestrator.run(cohort, target)
        return result.to_dict()

    bind_context(run_id=uuid4().hex[:12], task="compute_behavior_snapshots")
    try:
        return run_async(_execute())
    finally:
        clear_context()


def get_behavior_actors() -> list[dramatiq.Actor]:
    """Get all behavior actors for registration."""
    return [compute_behavior_snapshots]
