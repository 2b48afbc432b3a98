"""
Unit tests for AssignmentStateMachine.

The repository and notification channel are mocked; these tests pin the
decision logic: which guard fires, that rejected transitions never write,
and that conflicts detected by the conditional write are reported as the
same rejection the guard would give.
"""

import uuid
from datetime import date, datetime
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from housekeeping.errors import ConcurrentModificationError, RepositoryError
from housekeeping.guards import Actor, RejectionReason
from housekeeping.services.notifications import ChangeEvent, NotificationService
from housekeeping.services.repository import AssignmentRepository
from housekeeping.services.state_machine import AssignmentStateMachine

WORK_DATE = date(2024, 5, 1)
NOW = datetime(2024, 5, 1, 9, 30)


def make_assignment(worker_id, status="assigned", room_number="101", **fields):
    values = dict(
        assignment_id=uuid.uuid4(),
        room_id=uuid.uuid4(),
        assigned_to=worker_id,
        assignment_date=WORK_DATE,
        assignment_type="daily_cleaning",
        status=status,
        priority=1,
        ready_to_clean=False,
        completion_photos=[],
        dnd_photos=[],
        is_dnd=False,
        supervisor_approved=None,
        notes=None,
        room=SimpleNamespace(room_number=room_number, floor_number=1),
    )
    values.update(fields)
    return SimpleNamespace(**values)


@pytest.fixture
def worker():
    return Actor(uuid.uuid4(), "housekeeping", "Maria")


@pytest.fixture
def manager():
    return Actor(uuid.uuid4(), "manager", "Ops")


@pytest.fixture
def repo():
    repository = MagicMock(spec=AssignmentRepository)
    repository.get_latest_attendance.return_value = SimpleNamespace(status="checked_in", notes=None)
    repository.get_active_assignments.return_value = []
    return repository


@pytest.fixture
def notifications():
    return MagicMock(spec=NotificationService)


@pytest.fixture
def machine(repo, notifications):
    return AssignmentStateMachine(repository=repo, notifications=notifications)


# =============================================================================
# start
# =============================================================================

class TestStart:

    def test_starts_when_checked_in_and_free(self, machine, repo, notifications, worker):
        assignment = make_assignment(worker.user_id)
        started = make_assignment(worker.user_id, status="in_progress", assignment_id=assignment.assignment_id)
        repo.get_assignment.return_value = assignment
        repo.start_assignment.return_value = started

        result = machine.start(worker, assignment.assignment_id, now=NOW)

        assert result.ok
        assert result.assignment is started
        assert result.events == [ChangeEvent.ASSIGNMENT_CHANGED]
        repo.start_assignment.assert_called_once_with(
            assignment.assignment_id, worker.user_id, WORK_DATE, NOW, True, worker.user_id,
        )
        notifications.publish.assert_called_once()
        assert notifications.publish.call_args[0][:2] == (worker.user_id, ChangeEvent.ASSIGNMENT_CHANGED)

    def test_on_break_rejected_without_write(self, machine, repo, worker):
        """Worker on break cannot start; status stays assigned."""
        assignment = make_assignment(worker.user_id)
        repo.get_assignment.return_value = assignment
        repo.get_latest_attendance.return_value = SimpleNamespace(status="on_break", notes=None)

        result = machine.start(worker, assignment.assignment_id)

        assert not result.ok
        assert result.reason == RejectionReason.ON_BREAK
        assert assignment.status == "assigned"
        repo.start_assignment.assert_not_called()

    @pytest.mark.parametrize("record", [None, SimpleNamespace(status="checked_out", notes=None)])
    def test_not_checked_in_rejected(self, machine, repo, worker, record):
        repo.get_assignment.return_value = make_assignment(worker.user_id)
        repo.get_latest_attendance.return_value = record

        result = machine.start(worker, uuid.uuid4())

        assert result.reason == RejectionReason.NOT_CHECKED_IN
        repo.start_assignment.assert_not_called()

    def test_manual_checkin_marker_allows_start(self, machine, repo, worker):
        assignment = make_assignment(worker.user_id)
        repo.get_assignment.return_value = assignment
        repo.get_latest_attendance.return_value = SimpleNamespace(
            status="checked_out", notes="Manually checked in by admin",
        )
        repo.start_assignment.return_value = assignment

        assert machine.start(worker, assignment.assignment_id).ok

    def test_attendance_read_fresh_for_each_attempt(self, machine, repo, worker):
        assignment = make_assignment(worker.user_id)
        repo.get_assignment.return_value = assignment
        repo.start_assignment.return_value = assignment
        repo.get_latest_attendance.side_effect = [
            SimpleNamespace(status="on_break", notes=None),
            SimpleNamespace(status="checked_in", notes=None),
        ]

        assert machine.start(worker, assignment.assignment_id).reason == RejectionReason.ON_BREAK
        assert machine.start(worker, assignment.assignment_id).ok
        assert repo.get_latest_attendance.call_count == 2

    def test_second_active_room_rejected_naming_first(self, machine, repo, worker):
        """X in progress on the same date: starting Y names X's room."""
        x = make_assignment(worker.user_id, status="in_progress", room_number="204")
        y = make_assignment(worker.user_id)
        repo.get_assignment.return_value = y
        repo.get_active_assignments.return_value = [x]

        result = machine.start(worker, y.assignment_id)

        assert result.reason == RejectionReason.ALREADY_WORKING_ON
        assert result.detail["room_number"] == "204"
        assert "204" in result.message
        assert y.status == "assigned"
        repo.start_assignment.assert_not_called()

    def test_attendance_checked_before_concurrency(self, machine, repo, worker):
        repo.get_assignment.return_value = make_assignment(worker.user_id)
        repo.get_latest_attendance.return_value = None
        repo.get_active_assignments.return_value = [make_assignment(worker.user_id, status="in_progress")]

        assert machine.start(worker, uuid.uuid4()).reason == RejectionReason.NOT_CHECKED_IN

    def test_exempt_role_may_hold_several_rooms(self, machine, repo):
        supervisor = Actor(uuid.uuid4(), "housekeeping_manager")
        assignment = make_assignment(supervisor.user_id)
        repo.get_assignment.return_value = assignment
        repo.get_active_assignments.return_value = [make_assignment(supervisor.user_id, status="in_progress")]
        repo.start_assignment.return_value = assignment

        assert machine.start(supervisor, assignment.assignment_id).ok
        assert repo.start_assignment.call_args[0][4] is False

    def test_manager_start_checks_assignee(self, machine, repo, manager):
        worker_id = uuid.uuid4()
        assignment = make_assignment(worker_id)
        repo.get_assignment.return_value = assignment
        repo.get_staff_member.return_value = SimpleNamespace(
            user_id=worker_id, role="housekeeping", display_name="Ana",
        )
        repo.get_active_assignments.return_value = [make_assignment(worker_id, status="in_progress")]

        result = machine.start(manager, assignment.assignment_id)

        assert result.reason == RejectionReason.ALREADY_WORKING_ON
        repo.get_latest_attendance.assert_called_with(worker_id, WORK_DATE)

    def test_race_lost_reported_as_already_working_on(self, machine, repo, worker):
        """The guard passed but the conditional write found another active room."""
        y = make_assignment(worker.user_id)
        winner = make_assignment(worker.user_id, status="in_progress", room_number="305")
        repo.get_assignment.return_value = y
        repo.get_active_assignments.side_effect = [[], [winner]]
        repo.start_assignment.side_effect = ConcurrentModificationError("RoomAssignment", y.assignment_id)

        result = machine.start(worker, y.assignment_id)

        assert result.reason == RejectionReason.ALREADY_WORKING_ON
        assert result.detail["room_number"] == "305"

    def test_race_lost_to_status_change(self, machine, repo, worker):
        y = make_assignment(worker.user_id)
        cancelled = make_assignment(worker.user_id, status="cancelled", assignment_id=y.assignment_id)
        repo.get_assignment.side_effect = [y, cancelled]
        repo.start_assignment.side_effect = ConcurrentModificationError("RoomAssignment", y.assignment_id)

        result = machine.start(worker, y.assignment_id)

        assert result.reason == RejectionReason.ILLEGAL_TRANSITION
        assert result.detail["status"] == "cancelled"

    @pytest.mark.parametrize("status", ["in_progress", "completed", "cancelled"])
    def test_only_assigned_can_start(self, machine, repo, worker, status):
        repo.get_assignment.return_value = make_assignment(worker.user_id, status=status)

        result = machine.start(worker, uuid.uuid4())

        assert result.reason == RejectionReason.ILLEGAL_TRANSITION
        assert result.detail == {"status": status, "action": "start"}
        repo.start_assignment.assert_not_called()

    def test_unknown_assignment(self, machine, repo, worker):
        repo.get_assignment.return_value = None
        assert machine.start(worker, uuid.uuid4()).reason == RejectionReason.NOT_FOUND

    def test_malformed_id_is_not_found(self, machine, repo, worker):
        assert machine.start(worker, "not-a-uuid").reason == RejectionReason.NOT_FOUND
        repo.get_assignment.assert_not_called()

    def test_other_workers_assignment(self, machine, repo, worker):
        repo.get_assignment.return_value = make_assignment(uuid.uuid4())
        assert machine.start(worker, uuid.uuid4()).reason == RejectionReason.NOT_ASSIGNEE

    def test_repository_failure_propagates_without_publish(self, machine, repo, notifications, worker):
        assignment = make_assignment(worker.user_id)
        repo.get_assignment.return_value = assignment
        repo.start_assignment.side_effect = RepositoryError("start_assignment")

        with pytest.raises(RepositoryError):
            machine.start(worker, assignment.assignment_id)
        notifications.publish.assert_not_called()


# =============================================================================
# complete
# =============================================================================

class TestComplete:

    def test_daily_cleaning_without_photos_rejected(self, machine, repo, worker):
        assignment = make_assignment(worker.user_id, status="in_progress")
        repo.get_assignment.return_value = assignment

        result = machine.complete(worker, assignment.assignment_id)

        assert result.reason == RejectionReason.PHOTOS_REQUIRED
        assert assignment.status == "in_progress"
        repo.update_status.assert_not_called()

    def test_completes_with_photos_and_awaits_approval(self, machine, repo, notifications, worker):
        assignment = make_assignment(worker.user_id, status="in_progress", completion_photos=["p/1.jpg"])
        done = make_assignment(worker.user_id, status="completed", assignment_id=assignment.assignment_id)
        repo.get_assignment.return_value = assignment
        repo.update_status.return_value = done

        result = machine.complete(worker, assignment.assignment_id, now=NOW)

        assert result.ok
        assert result.events == [ChangeEvent.ASSIGNMENT_CHANGED, ChangeEvent.AWAITING_SUPERVISOR_APPROVAL]
        args = repo.update_status.call_args[0]
        assert args[1] == ["in_progress"]
        assert args[2] == {"status": "completed", "completed_at": NOW}
        published = [c[0][1] for c in notifications.publish.call_args_list]
        assert ChangeEvent.AWAITING_SUPERVISOR_APPROVAL in published

    def test_checkout_cleaning_needs_no_photos(self, machine, repo, worker):
        assignment = make_assignment(worker.user_id, status="in_progress", assignment_type="checkout_cleaning")
        repo.get_assignment.return_value = assignment
        repo.update_status.return_value = assignment

        assert machine.complete(worker, assignment.assignment_id).ok

    def test_completing_assigned_is_illegal(self, machine, repo, worker):
        repo.get_assignment.return_value = make_assignment(worker.user_id)
        assert machine.complete(worker, uuid.uuid4()).reason == RejectionReason.ILLEGAL_TRANSITION

    def test_stale_write_reports_current_status(self, machine, repo, worker):
        assignment = make_assignment(worker.user_id, status="in_progress", completion_photos=["p"])
        cancelled = make_assignment(worker.user_id, status="cancelled", assignment_id=assignment.assignment_id)
        repo.get_assignment.side_effect = [assignment, cancelled]
        repo.update_status.side_effect = ConcurrentModificationError("RoomAssignment", assignment.assignment_id)

        result = machine.complete(worker, assignment.assignment_id)

        assert result.reason == RejectionReason.ILLEGAL_TRANSITION
        assert result.detail["status"] == "cancelled"


# =============================================================================
# cancel
# =============================================================================

class TestCancel:

    @pytest.mark.parametrize("status", ["assigned", "in_progress", "completed"])
    def test_manager_can_cancel(self, machine, repo, manager, status):
        assignment = make_assignment(uuid.uuid4(), status=status)
        repo.get_assignment.return_value = assignment
        repo.cancel_assignment.return_value = assignment

        assert machine.cancel(manager, assignment.assignment_id).ok
        repo.cancel_assignment.assert_called_once()

    def test_cancelled_cannot_be_cancelled_again(self, machine, repo, manager):
        repo.get_assignment.return_value = make_assignment(uuid.uuid4(), status="cancelled")

        result = machine.cancel(manager, uuid.uuid4())

        assert result.reason == RejectionReason.ILLEGAL_TRANSITION
        repo.cancel_assignment.assert_not_called()

    def test_worker_cannot_cancel(self, machine, repo, worker):
        repo.get_assignment.return_value = make_assignment(worker.user_id)
        assert machine.cancel(worker, uuid.uuid4()).reason == RejectionReason.NOT_AUTHORIZED

    def test_cancelling_dnd_room_announces_room_change(self, machine, repo, manager):
        assignment = make_assignment(uuid.uuid4(), status="completed", is_dnd=True)
        repo.get_assignment.return_value = assignment
        repo.cancel_assignment.return_value = assignment

        result = machine.cancel(manager, assignment.assignment_id)

        assert result.events == [ChangeEvent.ASSIGNMENT_CHANGED, ChangeEvent.ROOM_CHANGED]


# =============================================================================
# Field updates
# =============================================================================

class TestFieldUpdates:

    def test_add_photos(self, machine, repo, worker):
        assignment = make_assignment(worker.user_id, status="in_progress")
        repo.get_assignment.return_value = assignment
        repo.add_photos.return_value = assignment

        result = machine.add_completion_photos(worker, assignment.assignment_id, ["a.jpg", "", "b.jpg"])

        assert result.ok
        assert repo.add_photos.call_args[0][1] == ["a.jpg", "b.jpg"]

    def test_add_no_photos_is_noop(self, machine, repo, worker):
        repo.get_assignment.return_value = make_assignment(worker.user_id)
        assert machine.add_completion_photos(worker, uuid.uuid4(), []).ok
        repo.add_photos.assert_not_called()

    def test_photos_rejected_after_completion(self, machine, repo, worker):
        repo.get_assignment.return_value = make_assignment(worker.user_id, status="completed")
        result = machine.add_completion_photos(worker, uuid.uuid4(), ["a.jpg"])
        assert result.reason == RejectionReason.ILLEGAL_TRANSITION

    def test_ready_to_clean_checkout_only(self, machine, repo, manager):
        repo.get_assignment.return_value = make_assignment(uuid.uuid4())
        result = machine.mark_ready_to_clean(manager, uuid.uuid4())
        assert result.reason == RejectionReason.NOT_CHECKOUT
        repo.update_status.assert_not_called()

    def test_ready_to_clean(self, machine, repo, manager):
        assignment = make_assignment(uuid.uuid4(), assignment_type="checkout_cleaning")
        repo.get_assignment.return_value = assignment
        repo.update_status.return_value = assignment

        assert machine.mark_ready_to_clean(manager, assignment.assignment_id).ok
        assert repo.update_status.call_args[0][2] == {"ready_to_clean": True}

    def test_ready_to_clean_needs_manager(self, machine, repo, worker):
        repo.get_assignment.return_value = make_assignment(worker.user_id, assignment_type="checkout_cleaning")
        assert machine.mark_ready_to_clean(worker, uuid.uuid4()).reason == RejectionReason.NOT_AUTHORIZED

    def test_append_note_formats_line(self, machine, repo, worker):
        assignment = make_assignment(worker.user_id)
        repo.get_assignment.return_value = assignment
        repo.append_note.return_value = assignment

        machine.append_note(worker, assignment.assignment_id, "  towels short  ", now=NOW)

        assert repo.append_note.call_args[0][1] == "[2024-05-01 09:30] Maria: towels short"

    def test_blank_note_is_noop(self, machine, repo, worker):
        repo.get_assignment.return_value = make_assignment(worker.user_id)
        assert machine.append_note(worker, uuid.uuid4(), "   ").ok
        repo.append_note.assert_not_called()
