# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Background task infrastructure.

Provides background task processing with Dramatiq:
- Redis broker (StubBroker in test mode)
- The weekly behavior snapshot actor
- APScheduler integration for the weekly cron

Quick Start:
    # Setup broker (call once at startup)
    from src.infrastructure.background import setup_dramatiq
    setup_dramatiq()

    # Send tasks
    from src.infrastructure.background.tasks import compute_behavior_snapshots
    compute_behavior_snapshots.send("all")

Running Workers:
    dramatiq src.infrastructure.background.tasks --processes 1 --threads 2

Scheduler:
    from src.infrastructure.background import start_scheduler, stop_scheduler

    await start_scheduler()
    await stop_scheduler()
"""

from src.infrastructure.background.broker import (
    BrokerManager,
    Priority,
    Queues,
    get_broker,
    get_broker_manager,
    setup_dramatiq,
    shutdown_dramatiq,
)
from src.infrastructure.background.scheduler import (
    DramatiqScheduler,
    ScheduledTask,
    get_scheduler,
    start_scheduler,
    stop_scheduler,
)

# Task actors are imported lazily to avoid circular imports
# Use: from src.infrastructure.background.tasks import compute_behavior_snapshots

__all__ = [
    # Broker
    "BrokerManager",
    "Priority",
    "Queues",
    "get_broker",
    "get_broker_manager",
    "setup_dramatiq",
    "shutdown_dramatiq",
    # Scheduler
    "DramatiqScheduler",
    "ScheduledTask",
    "get_scheduler",
    "start_scheduler",
    "stop_scheduler",
]
