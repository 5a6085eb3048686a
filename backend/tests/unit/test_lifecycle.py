"""Unit tests for the report lifecycle.

Tests the transition table, role authorization and the pure lifecycle
commands.

Run with: pytest tests/unit/test_lifecycle.py -v
"""

from datetime import datetime, timedelta, timezone

import pytest

from wastewatch.models.base import ReportStatus, Zone
from wastewatch.models.workers import Worker
from wastewatch.workflow import (
    Action,
    AssignWorker,
    CompleteJob,
    InvalidTransitionError,
    NotPermittedError,
    StartJob,
    TransitionPayloadError,
    allowed_actions,
    can_perform,
)
from wastewatch.workflow.lifecycle import action_for, authorize

NOW = datetime(2024, 2, 1, 12, 0, tzinfo=timezone.utc)

WORKER = Worker(
    id="1",
    name="Amit Kumar",
    phone="+91-9876543210",
    email="amit.kumar@wastemanagement.com",
    zone=Zone.CENTRAL,
)


def by_id(reports, report_id):
    return next(r for r in reports if r.id == report_id)


class TestTransitionTable:
    """Tests for which status changes are allowed."""

    @pytest.mark.parametrize(
        "current,requested,action",
        [
            (ReportStatus.PENDING, ReportStatus.ASSIGNED, Action.ASSIGN),
            (ReportStatus.ASSIGNED, ReportStatus.IN_PROGRESS, Action.START),
            (ReportStatus.IN_PROGRESS, ReportStatus.RESOLVED, Action.COMPLETE),
        ],
    )
    def test_forward_steps(self, current, requested, action):
        assert action_for(current, requested) == action

    @pytest.mark.parametrize(
        "current,requested",
        [
            (ReportStatus.PENDING, ReportStatus.IN_PROGRESS),
            (ReportStatus.PENDING, ReportStatus.RESOLVED),
            (ReportStatus.ASSIGNED, ReportStatus.PENDING),
            (ReportStatus.IN_PROGRESS, ReportStatus.ASSIGNED),
            (ReportStatus.ASSIGNED, ReportStatus.ASSIGNED),
            (ReportStatus.RESOLVED, ReportStatus.PENDING),
            (ReportStatus.RESOLVED, ReportStatus.RESOLVED),
        ],
    )
    def test_skips_backward_and_noop_rejected(self, current, requested):
        """Test that anything but the single next step is invalid."""
        with pytest.raises(InvalidTransitionError) as exc_info:
            action_for(current, requested)

        assert exc_info.value.current == current
        assert exc_info.value.requested == requested

    def test_resolved_is_terminal(self):
        assert allowed_actions(ReportStatus.RESOLVED) == []
        assert allowed_actions(ReportStatus.PENDING) == [Action.ASSIGN]


class TestAuthorization:
    """Tests for who may perform each action."""

    def test_admin_assigns(self, admin_user, sample_reports):
        authorize(Action.ASSIGN, admin_user, by_id(sample_reports, "1"))

    def test_worker_cannot_assign(self, worker_user, sample_reports):
        with pytest.raises(NotPermittedError):
            authorize(Action.ASSIGN, worker_user, by_id(sample_reports, "1"))

    def test_citizen_cannot_start(self, citizen_user, sample_reports):
        with pytest.raises(NotPermittedError):
            authorize(Action.START, citizen_user, by_id(sample_reports, "2"))

    def test_admin_cannot_start_a_job(self, admin_user, sample_reports):
        """Test that only field workers move jobs forward."""
        with pytest.raises(NotPermittedError):
            authorize(Action.START, admin_user, by_id(sample_reports, "2"))

    def test_only_assigned_worker_starts(self, sample_reports, make_worker):
        report = by_id(sample_reports, "2")

        authorize(Action.START, make_worker("1"), report)
        with pytest.raises(NotPermittedError, match="assigned to you"):
            authorize(Action.START, make_worker("2"), report)

    def test_can_perform_combines_status_and_role(self, worker_user, admin_user, sample_reports):
        assigned = by_id(sample_reports, "2")

        assert can_perform(Action.START, worker_user, assigned) is True
        assert can_perform(Action.COMPLETE, worker_user, assigned) is False
        assert can_perform(Action.START, admin_user, assigned) is False


class TestCommands:
    """Tests for the pure lifecycle commands."""

    def test_assign_sets_worker_and_deadline(self, sample_reports):
        report = by_id(sample_reports, "1")

        updated = AssignWorker(worker=WORKER).apply(report, "admin-1", NOW)

        assert updated.status == ReportStatus.ASSIGNED
        assert updated.assigned_worker == "Amit Kumar"
        assert updated.assigned_worker_id == "1"
        assert updated.assigned_at == NOW
        # severity 8.5 is High priority: six hours
        assert updated.estimated_completion_at == NOW + timedelta(hours=6)
        assert updated.updated_at == NOW

    def test_apply_does_not_mutate_input(self, sample_reports):
        report = by_id(sample_reports, "1")

        AssignWorker(worker=WORKER).apply(report, "admin-1", NOW)

        assert report.status == ReportStatus.PENDING
        assert report.assigned_worker_id is None
        assert len(report.history) == 1

    def test_history_is_appended(self, sample_reports):
        report = by_id(sample_reports, "1")

        updated = AssignWorker(worker=WORKER).apply(report, "admin-1", NOW)

        event = updated.history[-1]
        assert len(updated.history) == 2
        assert event.from_status == ReportStatus.PENDING
        assert event.to_status == ReportStatus.ASSIGNED
        assert event.actor_id == "admin-1"
        assert event.at == NOW

    def test_start_refreshes_updated_at(self, sample_reports):
        report = by_id(sample_reports, "2")

        updated = StartJob().apply(report, "1", NOW)

        assert updated.status == ReportStatus.IN_PROGRESS
        assert updated.started_at == NOW
        assert updated.updated_at == NOW
        assert updated.updated_at != report.updated_at

    def test_complete_records_notes_and_duration(self, sample_reports):
        report = by_id(sample_reports, "3")
        done_at = report.started_at + timedelta(minutes=90)

        updated = CompleteJob(completion_notes="  Cleared and recycled  ").apply(report, "2", done_at)

        assert updated.status == ReportStatus.RESOLVED
        assert updated.completion_notes == "Cleared and recycled"
        assert updated.completed_at == done_at
        assert updated.actual_completion_minutes == 90

    @pytest.mark.parametrize("notes", [None, "", "   \n\t"])
    def test_complete_requires_notes(self, sample_reports, notes):
        report = by_id(sample_reports, "3")

        with pytest.raises(TransitionPayloadError, match="notes are required"):
            CompleteJob(completion_notes=notes).apply(report, "2", NOW)

    def test_complete_rejects_long_notes(self, sample_reports):
        with pytest.raises(TransitionPayloadError, match="500"):
            CompleteJob(completion_notes="x" * 501).apply(by_id(sample_reports, "3"), "2", NOW)

    def test_command_checks_source_status(self, sample_reports):
        """Test that a command applied to the wrong state is an invalid transition."""
        with pytest.raises(InvalidTransitionError):
            StartJob().apply(by_id(sample_reports, "1"), "1", NOW)
        with pytest.raises(InvalidTransitionError):
            CompleteJob(completion_notes="done").apply(by_id(sample_reports, "4"), "3", NOW)
