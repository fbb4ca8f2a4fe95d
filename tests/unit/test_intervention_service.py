# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for Intervention service."""

from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.domains.intervention.audit import AuditLogger
from src.domains.intervention.service import (
    ALLOWED_TRANSITIONS,
    InterventionNotFoundError,
    InterventionPermissionError,
    InterventionService,
    InterventionValidationError,
    InvalidStatusTransitionError,
    can_transition,
)
from src.infrastructure.database.models import Intervention
from src.models.intervention import (
    TERMINAL_STATUSES,
    InterventionCreateRequest,
    InterventionStatus,
    InterventionType,
    InterventionUpdateRequest,
)

CREATED = datetime(2025, 3, 11, 10, tzinfo=timezone.utc)


@pytest.fixture
def mock_audit():
    """Create mock audit logger."""
    audit = MagicMock(spec=AuditLogger)
    audit.record = AsyncMock(return_value=True)
    return audit


@pytest.fixture
def intervention_service(mock_db, mock_audit):
    """Create intervention service with mock database."""

    async def refresh(instance):
        if instance.id is None:
            instance.id = 1
        instance.created_at = instance.created_at or CREATED
        instance.updated_at = instance.updated_at or CREATED

    mock_db.refresh.side_effect = refresh
    return InterventionService(db=mock_db, audit=mock_audit)


@pytest.fixture
def sample_intervention(sample_teacher_id, sample_student_id):
    """Create a pending intervention row."""
    return Intervention(
        id=5,
        student_id=sample_student_id,
        created_by=sample_teacher_id,
        intervention_type="meeting",
        title="Check-in about attendance",
        description=None,
        notes=None,
        follow_up_date=None,
        follow_up_required=False,
        triggered_by_risk_score=80,
        risk_factors=["poor_attendance"],
        status="pending",
        outcome_description=None,
        effectiveness_rating=None,
        closed_at=None,
        created_at=CREATED,
        updated_at=CREATED,
    )


def found(mock_db, intervention) -> None:
    result = MagicMock()
    result.scalar_one_or_none.return_value = intervention
    mock_db.execute.return_value = result


class TestTransitions:
    """Tests for the status state machine."""

    @pytest.mark.parametrize("terminal", sorted(TERMINAL_STATUSES))
    def test_terminal_statuses_cannot_reopen(self, terminal) -> None:
        for requested in InterventionStatus:
            assert can_transition(terminal, requested) is (requested in TERMINAL_STATUSES)

    def test_pending_can_go_anywhere(self) -> None:
        for requested in InterventionStatus:
            assert can_transition(InterventionStatus.PENDING, requested) is True

    def test_in_progress_cannot_return_to_pending(self) -> None:
        assert can_transition(InterventionStatus.IN_PROGRESS, InterventionStatus.PENDING) is False
        assert can_transition(InterventionStatus.IN_PROGRESS, InterventionStatus.CLOSED) is True

    def test_every_status_has_an_entry(self) -> None:
        assert set(ALLOWED_TRANSITIONS) == set(InterventionStatus)


class TestInterventionServiceCreate:
    """Tests for intervention creation."""

    @pytest.mark.asyncio
    async def test_create_success(self, intervention_service, mock_db, mock_audit, sample_student_id):
        """Test that a teacher creates a pending intervention."""
        request = InterventionCreateRequest(
            student_id=sample_student_id,
            intervention_type=InterventionType.EMAIL,
            title="Missed two assignments",
            follow_up_date=date(2025, 3, 18),
            triggered_by_risk_score=65,
            risk_factors=["missing_assignments"],
        )

        response = await intervention_service.create(request, actor_id=7, actor_role="teacher")

        mock_db.add.assert_called_once()
        mock_db.commit.assert_awaited_once()
        assert response.id == 1
        assert response.status == InterventionStatus.PENDING
        assert response.created_by == 7
        assert response.closed_at is None
        mock_audit.record.assert_awaited_once_with(
            7,
            "intervention_created",
            {"intervention_id": 1, "student_id": sample_student_id},
        )

    @pytest.mark.asyncio
    async def test_create_rejects_student(self, intervention_service, mock_db, sample_student_id):
        request = InterventionCreateRequest(
            student_id=sample_student_id,
            intervention_type=InterventionType.CALL,
            title="Self-referral",
        )

        with pytest.raises(InterventionPermissionError):
            await intervention_service.create(request, actor_id=sample_student_id, actor_role="student")

        mock_db.add.assert_not_called()


class TestInterventionServiceUpdate:
    """Tests for intervention updates."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("terminal", ["closed", "successful", "unsuccessful"])
    async def test_terminal_status_sets_closed_at(
        self, intervention_service, mock_db, sample_intervention, terminal
    ):
        found(mock_db, sample_intervention)

        response = await intervention_service.update(
            5,
            InterventionUpdateRequest(status=terminal, outcome_description="Resolved"),
            actor_id=7,
            actor_role="teacher",
        )

        assert response.status == InterventionStatus(terminal)
        assert response.closed_at is not None
        assert response.outcome_description == "Resolved"
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_in_progress_does_not_set_closed_at(
        self, intervention_service, mock_db, sample_intervention
    ):
        found(mock_db, sample_intervention)

        response = await intervention_service.update(
            5,
            InterventionUpdateRequest(status="in_progress"),
            actor_id=7,
            actor_role="teacher",
        )

        assert response.status == InterventionStatus.IN_PROGRESS
        assert response.closed_at is None

    @pytest.mark.asyncio
    async def test_update_from_terminal_conflicts(
        self, intervention_service, mock_db, sample_intervention
    ):
        sample_intervention.status = "closed"
        found(mock_db, sample_intervention)

        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            await intervention_service.update(
                5,
                InterventionUpdateRequest(status="in_progress"),
                actor_id=7,
                actor_role="teacher",
            )

        assert exc_info.value.current == "closed"
        mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("previous", ["closed", "successful", "unsuccessful"])
    async def test_terminal_to_terminal_restamps_closed_at(
        self, intervention_service, mock_db, sample_intervention, previous
    ):
        earlier = datetime(2025, 3, 1, tzinfo=timezone.utc)
        sample_intervention.status = previous
        sample_intervention.closed_at = earlier
        found(mock_db, sample_intervention)

        response = await intervention_service.update(
            5,
            InterventionUpdateRequest(status="successful"),
            actor_id=7,
            actor_role="teacher",
        )

        assert response.status == InterventionStatus.SUCCESSFUL
        assert response.closed_at is not None
        assert response.closed_at > earlier
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_fields_without_status_are_applied(
        self, intervention_service, mock_db, sample_intervention
    ):
        found(mock_db, sample_intervention)

        response = await intervention_service.update(
            5,
            InterventionUpdateRequest(notes="Called parents", effectiveness_rating=4),
            actor_id=1,
            actor_role="admin",
        )

        assert response.notes == "Called parents"
        assert response.effectiveness_rating == 4
        assert response.status == InterventionStatus.PENDING

    @pytest.mark.asyncio
    async def test_empty_update_rejected(self, intervention_service, mock_db):
        with pytest.raises(InterventionValidationError):
            await intervention_service.update(
                5,
                InterventionUpdateRequest(status=None),
                actor_id=7,
                actor_role="teacher",
            )

        mock_db.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_other_teacher_rejected(
        self, intervention_service, mock_db, sample_intervention
    ):
        found(mock_db, sample_intervention)

        with pytest.raises(InterventionPermissionError):
            await intervention_service.update(
                5,
                InterventionUpdateRequest(notes="Not mine"),
                actor_id=99,
                actor_role="teacher",
            )

    @pytest.mark.asyncio
    async def test_update_not_found(self, intervention_service, mock_db):
        found(mock_db, None)

        with pytest.raises(InterventionNotFoundError):
            await intervention_service.update(
                404,
                InterventionUpdateRequest(notes="Ghost"),
                actor_id=7,
                actor_role="teacher",
            )

    @pytest.mark.asyncio
    async def test_audit_failure_does_not_fail_update(
        self, intervention_service, mock_db, mock_audit, sample_intervention
    ):
        """Test that a failed audit write leaves the update intact."""
        found(mock_db, sample_intervention)
        mock_audit.record.return_value = False

        response = await intervention_service.update(
            5,
            InterventionUpdateRequest(status="in_progress"),
            actor_id=7,
            actor_role="teacher",
        )

        assert response.status == InterventionStatus.IN_PROGRESS
        mock_audit.record.assert_awaited_once()


class TestInterventionServiceDelete:
    """Tests for intervention deletion."""

    @pytest.mark.asyncio
    async def test_admin_deletes(self, intervention_service, mock_db, mock_audit, sample_intervention):
        found(mock_db, sample_intervention)

        await intervention_service.delete(5, actor_id=1, actor_role="admin")

        mock_db.delete.assert_awaited_once_with(sample_intervention)
        mock_db.commit.assert_awaited_once()
        assert mock_audit.record.await_args.args[1] == "intervention_deleted"

    @pytest.mark.asyncio
    async def test_teacher_cannot_delete(self, intervention_service, mock_db):
        with pytest.raises(InterventionPermissionError):
            await intervention_service.delete(5, actor_id=7, actor_role="teacher")

        mock_db.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete_not_found(self, intervention_service, mock_db):
        found(mock_db, None)

        with pytest.raises(InterventionNotFoundError):
            await intervention_service.delete(404, actor_id=1, actor_role="admin")


class TestInterventionServiceList:
    """Tests for intervention listing."""

    @pytest.mark.asyncio
    async def test_teacher_sees_own(self, intervention_service, mock_db, sample_intervention):
        count_result = MagicMock()
        count_result.scalar.return_value = 1
        items_result = MagicMock()
        items_result.all.return_value = [(sample_intervention, "Ayşe Demir", "Mehmet Kaya")]
        mock_db.execute.side_effect = [count_result, items_result]

        response = await intervention_service.list_interventions(
            7,
            "teacher",
            status=InterventionStatus.PENDING,
        )

        assert response.total == 1
        assert response.items[0].id == 5
        assert response.items[0].student_name == "Ayşe Demir"
        assert response.items[0].created_by_name == "Mehmet Kaya"
        items_sql = str(mock_db.execute.await_args_list[1].args[0])
        assert "interventions.created_by = " in items_sql
        assert "interventions.status = " in items_sql
        assert items_sql.count("LEFT OUTER JOIN users AS") == 2

    @pytest.mark.asyncio
    async def test_admin_sees_all(self, intervention_service, mock_db):
        count_result = MagicMock()
        count_result.scalar.return_value = 0
        items_result = MagicMock()
        items_result.all.return_value = []
        mock_db.execute.side_effect = [count_result, items_result]

        response = await intervention_service.list_interventions(1, "admin")

        assert response.total == 0
        items_sql = str(mock_db.execute.await_args_list[1].args[0])
        assert "interventions.created_by = " not in items_sql

    @pytest.mark.asyncio
    async def test_student_rejected(self, intervention_service):
        with pytest.raises(InterventionPermissionError):
            await intervention_service.list_interventions(42, "student")


class TestAuditLogger:
    """Tests for AuditLogger."""

    @pytest.mark.asyncio
    async def test_record_writes_entry(self):
        session = MagicMock()

        @asynccontextmanager
        async def factory():
            yield session

        assert await AuditLogger(factory).record(7, "intervention_created", {"id": 1}) is True
        session.add.assert_called_once()

    @pytest.mark.asyncio
    async def test_record_swallows_failure(self):
        @asynccontextmanager
        async def factory():
            raise RuntimeError("database unavailable")
            yield  # pragma: no cover

        assert await AuditLogger(factory).record(7, "intervention_created") is False
