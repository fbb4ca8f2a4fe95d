# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Scheduler for periodic Dramatiq tasks.

Uses APScheduler for cron-style job scheduling integrated with Dramatiq actors.
Scheduled jobs only enqueue messages; the work itself runs in a worker.

Example:
    from src.infrastructure.background.scheduler import get_scheduler

    scheduler = get_scheduler()
    await scheduler.start()

    # Weekly snapshot run, Sunday 23:00
    scheduler.add_cron_task(
        name="Weekly Behavior Snapshots",
        actor_name="compute_behavior_snapshots",
        cron_expression="0 23 * * 0",
        kwargs={"cohort": "all"},
    )
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable
from uuid import uuid4

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from src.core.config import get_settings

logger = logging.getLogger(__name__)

WEEKLY_SNAPSHOT_ACTOR = "compute_behavior_snapshots"


@dataclass
class ScheduledTask:
    """Configuration for a scheduled Dramatiq task.

    Attributes:
        id: Unique task identifier.
        name: Human-readable task name.
        actor_name: Name of the Dramatiq actor to call.
        cron_expression: Five-field cron expression.
        args: Positional arguments for the actor.
        kwargs: Keyword arguments for the actor.
        last_run: Last time the task was enqueued.
        run_count: Total number of runs.
        error_count: Number of failed enqueues.
    """

    name: str
    actor_name: str
    cron_expression: str
    args: tuple = field(default_factory=tuple)
    kwargs: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid4()))
    last_run: datetime | None = None
    run_count: int = 0
    error_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "name": self.name,
            "actor_name": self.actor_name,
            "cron_expression": self.cron_expression,
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "run_count": self.run_count,
            "error_count": self.error_count,
        }


class DramatiqScheduler:
    """Scheduler for periodic Dramatiq task execution.

    Attributes:
        _scheduler: APScheduler instance.
        _tasks: Dictionary of scheduled tasks.
        _running: Whether scheduler is running.
        _timezone: Timezone cron expressions are evaluated in.
    """

    def __init__(self, tz_name: str = "UTC") -> None:
        """Initialize the scheduler."""
        self._scheduler: AsyncIOScheduler | None = None
        self._tasks: dict[str, ScheduledTask] = {}
        self._running = False
        self._timezone = tz_name

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._running

    def _get_actor(self, actor_name: str) -> Callable[..., Any] | None:
        """Get a Dramatiq actor by name."""
        from src.infrastructure.background import tasks

        return getattr(tasks, actor_name, None)

    def add_cron_task(
        self,
        name: str,
        actor_name: str,
        cron_expression: str,
        args: tuple = (),
        kwargs: dict[str, Any] | None = None,
    ) -> ScheduledTask:
        """Add a cron-scheduled task.

        Args:
            name: Task name.
            actor_name: Dramatiq actor to call.
            cron_expression: Cron expression (minute hour day month weekday).
            args: Actor arguments.
            kwargs: Actor keyword arguments.

        Returns:
            Created ScheduledTask.

        Raises:
            ValueError: If the cron expression is invalid.
        """
        trigger = CronTrigger.from_crontab(cron_expression, timezone=self._timezone)

        task = ScheduledTask(
            name=name,
            actor_name=actor_name,
            cron_expression=cron_expression,
            args=args,
            kwargs=kwargs or {},
        )
        self._tasks[task.id] = task

        if self._scheduler:
            self._scheduler.add_job(
                self._execute_task,
                trigger=trigger,
                args=[task.id],
                id=task.id,
                name=name,
            )

        logger.info("Added cron task: %s (%s)", name, cron_expression)
        return task

    async def _execute_task(self, task_id: str) -> None:
        """Send a scheduled task to its Dramatiq actor."""
        task = self._tasks.get(task_id)
        if not task:
            return

        logger.debug("Executing scheduled task: %s", task.name)

        try:
            actor = self._get_actor(task.actor_name)
            if actor is None:
                raise ValueError(f"Actor not found: {task.actor_name}")

            actor.send(*task.args, **task.kwargs)

            task.last_run = datetime.now(timezone.utc)
            task.run_count += 1

            logger.debug("Scheduled task %s sent to queue", task.name)

        except Exception as e:
            task.error_count += 1
            logger.error("Scheduled task %s failed: %s", task.name, str(e))

    def list_tasks(self) -> list[ScheduledTask]:
        """List all scheduled tasks."""
        return list(self._tasks.values())

    async def start(self) -> None:
        """Start the scheduler."""
        if self._running:
            return

        self._scheduler = AsyncIOScheduler(timezone=self._timezone)
        self._scheduler.start()
        self._running = True

        logger.info("Dramatiq scheduler started")

    async def stop(self) -> None:
        """Stop the scheduler."""
        if not self._running:
            return

        if self._scheduler:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None

        self._running = False
        logger.info("Dramatiq scheduler stopped")

    def get_stats(self) -> dict[str, Any]:
        """Get scheduler statistics."""
        return {
            "is_running": self._running,
            "task_count": len(self._tasks),
            "total_runs": sum(t.run_count for t in self._tasks.values()),
            "total_errors": sum(t.error_count for t in self._tasks.values()),
            "tasks": [t.to_dict() for t in self._tasks.values()],
        }


# Singleton instance
_scheduler: DramatiqScheduler | None = None


def get_scheduler() -> DramatiqScheduler:
    """Get the singleton scheduler instance."""
    global _scheduler
    if _scheduler is None:
        _scheduler = DramatiqScheduler(tz_name=get_settings().behavior.timezone)
    return _scheduler


async def start_scheduler() -> DramatiqScheduler:
    """Start the scheduler and register the weekly snapshot job.

    Returns:
        Started scheduler instance.
    """
    behavior = get_settings().behavior
    scheduler = get_scheduler()

    if not behavior.scheduler_enabled:
        logger.info("Scheduler disabled by configuration")
        return scheduler

    await scheduler.start()

    scheduler.add_cron_task(
        name="Weekly Behavior Snapshots",
        actor_name=WEEKLY_SNAPSHOT_ACTOR,
        cron_expression=behavior.schedule_cron,
        kwargs={"cohort": "all"},
    )

    logger.info("Registered %d scheduled tasks", len(scheduler.list_tasks()))
    return scheduler


async def stop_scheduler() -> None:
    """Stop the scheduler."""
    global _scheduler
    if _scheduler is not None:
        await _scheduler.stop()
        _scheduler = None
