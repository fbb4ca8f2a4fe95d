# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Background task actors.

Usage:
    from src.infrastructure.background.tasks import compute_behavior_snapshots

    # Send a task
    compute_behavior_snapshots.send("current_week")

Running Workers:
    dramatiq src.infrastructure.background.tasks --processes 1 --threads 2
"""

from src.infrastructure.background.tasks.base import run_async
from src.infrastructure.background.tasks.behavior import (
    compute_behavior_snapshots,
    get_behavior_actors,
)

__all__ = [
    "compute_behavior_snapshots",
    "get_behavior_actors",
    "get_all_actors",
    "run_async",
]


def get_all_actors() -> list:
    """Get all registered actors.

    Returns:
        List of all Dramatiq actors.
    """
    return get_behavior_actors()
