# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the snapshot store."""

from datetime import date
from unittest.mock import MagicMock

from sqlalchemy.dialects import postgresql

from src.domains.behavior.aggregator import WeekWindow
from src.domains.behavior.snapshots import SNAPSHOT_UNIQUE_CONSTRAINT, SnapshotStore

WINDOW = WeekWindow(date(2025, 3, 10))


class TestSnapshotStoreUpsert:
    """Tests for SnapshotStore.upsert."""

    async def test_upsert_targets_unique_constraint(self, mock_db) -> None:
        """Test that the write is a single INSERT ... ON CONFLICT."""
        await SnapshotStore(mock_db).upsert(
            42,
            WINDOW,
            {"risk_score": 65, "risk_level": "at_risk", "login_count": 4},
        )

        mock_db.execute.assert_awaited_once()
        mock_db.flush.assert_awaited_once()

        stmt = mock_db.execute.await_args.args[0]
        sql = str(stmt.compile(dialect=postgresql.dialect()))
        assert "INSERT INTO behavior_snapshots" in sql
        assert f"ON CONFLICT ON CONSTRAINT {SNAPSHOT_UNIQUE_CONSTRAINT} DO UPDATE" in sql

    async def test_upsert_sets_key_and_week_end(self, mock_db) -> None:
        """Test that identity columns come from the window."""
        await SnapshotStore(mock_db).upsert(42, WINDOW, {"risk_score": 10})

        stmt = mock_db.execute.await_args.args[0]
        params = stmt.compile(dialect=postgresql.dialect()).params
        assert params["user_id"] == 42
        assert params["week_start"] == date(2025, 3, 10)
        assert params["week_end"] == date(2025, 3, 16)
        assert params["calculated_at"] is not None

    async def test_upsert_drops_unknown_columns(self, mock_db) -> None:
        """Test that non-column keys never reach the statement."""
        await SnapshotStore(mock_db).upsert(
            42,
            WINDOW,
            {"risk_score": 10, "time_distribution": {"morning": 1}, "id": 99},
        )

        stmt = mock_db.execute.await_args.args[0]
        params = stmt.compile(dialect=postgresql.dialect()).params
        assert "time_distribution" not in params
        assert "id" not in params


class TestSnapshotStoreReads:
    """Tests for snapshot reads."""

    async def test_history(self, mock_db, snapshot_factory) -> None:
        snapshots = [
            snapshot_factory(week_start=date(2025, 3, 10)),
            snapshot_factory(week_start=date(2025, 3, 3)),
        ]
        result = MagicMock()
        result.scalars.return_value.all.return_value = snapshots
        mock_db.execute.return_value = result

        assert await SnapshotStore(mock_db).history(42, 8) == snapshots

    async def test_latest_week_start_empty(self, mock_db) -> None:
        result = MagicMock()
        result.scalar_one_or_none.return_value = None
        mock_db.execute.return_value = result

        assert await SnapshotStore(mock_db).latest_week_start() is None
