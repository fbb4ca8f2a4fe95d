# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for background task infrastructure.

Runs against the Dramatiq StubBroker (DRAMATIQ_TEST_MODE=true).
"""

from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.domains.behavior import BatchRunResult
from src.infrastructure.background.broker import Queues, get_broker
from src.infrastructure.background.scheduler import (
    WEEKLY_SNAPSHOT_ACTOR,
    DramatiqScheduler,
)
from src.infrastructure.background.tasks import compute_behavior_snapshots, get_all_actors


class TestDramatiqScheduler:
    """Tests for DramatiqScheduler."""

    def test_add_cron_task_registers_task(self) -> None:
        scheduler = DramatiqScheduler()

        task = scheduler.add_cron_task(
            name="Weekly Behavior Snapshots",
            actor_name=WEEKLY_SNAPSHOT_ACTOR,
            cron_expression="0 23 * * 0",
            kwargs={"cohort": "all"},
        )

        assert scheduler.list_tasks() == [task]
        assert task.kwargs == {"cohort": "all"}
        assert scheduler.get_stats()["task_count"] == 1

    def test_invalid_cron_rejected(self) -> None:
        with pytest.raises(ValueError):
            DramatiqScheduler().add_cron_task("bad", WEEKLY_SNAPSHOT_ACTOR, "every sunday")

    async def test_execute_task_sends_to_actor(self) -> None:
        scheduler = DramatiqScheduler()
        task = scheduler.add_cron_task(
            "Weekly Behavior Snapshots",
            WEEKLY_SNAPSHOT_ACTOR,
            "0 23 * * 0",
            kwargs={"cohort": "all"},
        )
        actor = MagicMock()

        with patch.object(scheduler, "_get_actor", return_value=actor):
            await scheduler._execute_task(task.id)

        actor.send.assert_called_once_with(cohort="all")
        assert task.run_count == 1
        assert task.last_run is not None

    async def test_missing_actor_counts_error(self) -> None:
        scheduler = DramatiqScheduler()
        task = scheduler.add_cron_task("Ghost", "no_such_actor", "0 0 * * *")

        await scheduler._execute_task(task.id)

        assert task.error_count == 1
        assert task.run_count == 0


class TestBehaviorActors:
    """Tests for the snapshot actor."""

    def test_actor_is_registered_on_behavior_queue(self) -> None:
        assert compute_behavior_snapshots.queue_name == Queues.BEHAVIOR
        assert compute_behavior_snapshots in get_all_actors()
        assert get_broker().get_actor(compute_behavior_snapshots.actor_name) is not None

    @patch("src.infrastructure.background.tasks.behavior.BatchOrchestrator")
    def test_actor_runs_orchestrator(self, mock_orchestrator) -> None:
        mock_orchestrator.return_value.run = AsyncMock(
            return_value=BatchRunResult(
                cohort="all",
                week_start=date(2025, 3, 10),
                week_end=date(2025, 3, 16),
                processed=3,
            )
        )

        result = compute_behavior_snapshots("all", week_start="2025-03-12")

        assert result["processed"] == 3
        assert result["week_start"] == "2025-03-10"
        mock_orchestrator.return_value.run.assert_awaited_once_with("all", date(2025, 3, 12))
