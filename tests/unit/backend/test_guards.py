"""
Unit tests for transition guards.

Tests:
- AttendanceGate: manual check-in bypass, missing/checked-out, break, checked in
- ConcurrencyGuard: exempt roles, conflicting room named, candidate excluded
- PhotoRequirementPolicy: daily cleaning only
"""

import uuid
from types import SimpleNamespace

import pytest

from housekeeping.guards import (
    Actor,
    AttendanceGate,
    ConcurrencyGuard,
    GuardContext,
    GuardResult,
    PhotoRequirementPolicy,
    RejectionReason,
    render_message,
)

MARKER = "Manually checked in by admin"
SINGLE_TASK = frozenset({"housekeeping", "maintenance"})


def make_context(role="housekeeping", **kwargs):
    kwargs.setdefault("single_task_roles", SINGLE_TASK)
    kwargs.setdefault("manual_checkin_marker", MARKER)
    return GuardContext(actor=Actor(uuid.uuid4(), role), **kwargs)


def attendance(status, notes=None):
    return SimpleNamespace(status=status, notes=notes)


def assignment(status="assigned", room_number="101", **fields):
    values = dict(
        assignment_id=uuid.uuid4(),
        room_id=uuid.uuid4(),
        status=status,
        assignment_type="daily_cleaning",
        completion_photos=[],
        room=SimpleNamespace(room_number=room_number, floor_number=1),
    )
    values.update(fields)
    return SimpleNamespace(**values)


# =============================================================================
# AttendanceGate
# =============================================================================

class TestAttendanceGate:

    def setup_method(self):
        self.gate = AttendanceGate()

    def test_allows_checked_in(self):
        result = self.gate.check(make_context(attendance=attendance("checked_in")))
        assert result.allowed

    def test_denies_without_record(self):
        result = self.gate.check(make_context(attendance=None))
        assert not result.allowed
        assert result.reason == RejectionReason.NOT_CHECKED_IN
        assert result.guard_name == "AttendanceGate"

    def test_denies_checked_out(self):
        result = self.gate.check(make_context(attendance=attendance("checked_out")))
        assert result.reason == RejectionReason.NOT_CHECKED_IN

    def test_denies_on_break(self):
        result = self.gate.check(make_context(attendance=attendance("on_break")))
        assert result.reason == RejectionReason.ON_BREAK

    @pytest.mark.parametrize("status", ["on_break", "checked_out"])
    def test_manual_checkin_marker_bypasses_gate(self, status):
        record = attendance(status, notes=f"{MARKER} at 07:05")
        assert self.gate.check(make_context(attendance=record)).allowed

    def test_marker_ignored_when_not_configured(self):
        record = attendance("on_break", notes=MARKER)
        result = self.gate.check(make_context(attendance=record, manual_checkin_marker=None))
        assert result.reason == RejectionReason.ON_BREAK

    def test_unknown_status_is_not_checked_in(self):
        result = self.gate.check(make_context(attendance=attendance("sick")))
        assert result.reason == RejectionReason.NOT_CHECKED_IN
        assert result.detail == {"status": "sick"}


# =============================================================================
# ConcurrencyGuard
# =============================================================================

class TestConcurrencyGuard:

    def setup_method(self):
        self.guard = ConcurrencyGuard()

    def test_denies_second_active_room_and_names_it(self):
        active = assignment(status="in_progress", room_number="204")
        candidate = assignment()

        result = self.guard.check(make_context(assignment=candidate, active_assignments=[active]))

        assert not result.allowed
        assert result.reason == RejectionReason.ALREADY_WORKING_ON
        assert result.detail["room_number"] == "204"
        assert result.detail["assignment_id"] == str(active.assignment_id)
        assert "204" in result.message

    def test_ignores_candidate_itself(self):
        candidate = assignment(status="in_progress")
        result = self.guard.check(make_context(assignment=candidate, active_assignments=[candidate]))
        assert result.allowed

    def test_ignores_non_active_rows(self):
        done = assignment(status="completed")
        result = self.guard.check(make_context(assignment=assignment(), active_assignments=[done]))
        assert result.allowed

    def test_supervisory_roles_are_exempt(self):
        active = assignment(status="in_progress")
        context = make_context(role="manager", assignment=assignment(), active_assignments=[active])
        assert self.guard.check(context).allowed

    def test_falls_back_to_room_id_without_room(self):
        active = assignment(status="in_progress", room=None)
        result = self.guard.check(make_context(assignment=assignment(), active_assignments=[active]))
        assert result.detail["room_number"] == str(active.room_id)


# =============================================================================
# PhotoRequirementPolicy
# =============================================================================

class TestPhotoRequirementPolicy:

    def setup_method(self):
        self.policy = PhotoRequirementPolicy()

    def test_daily_cleaning_without_photos_denied(self):
        result = self.policy.check(make_context(assignment=assignment(status="in_progress")))
        assert result.reason == RejectionReason.PHOTOS_REQUIRED

    def test_daily_cleaning_with_photos_allowed(self):
        target = assignment(status="in_progress", completion_photos=["photos/101-a.jpg"])
        assert self.policy.check(make_context(assignment=target)).allowed

    @pytest.mark.parametrize("assignment_type", ["checkout_cleaning", "maintenance", "deep_cleaning"])
    def test_other_types_not_gated(self, assignment_type):
        target = assignment(status="in_progress", assignment_type=assignment_type)
        assert self.policy.check(make_context(assignment=target)).allowed


# =============================================================================
# Messages
# =============================================================================

class TestMessages:

    def test_every_reason_has_a_message(self):
        for reason in RejectionReason:
            assert render_message(reason, {})

    def test_missing_detail_renders_placeholder(self):
        assert "?" in render_message(RejectionReason.ALREADY_WORKING_ON)

    def test_result_to_dict(self):
        result = GuardResult.deny(RejectionReason.ON_BREAK, guard_name="AttendanceGate")
        data = result.to_dict()
        assert data["allowed"] is False
        assert data["reason"] == "on_break"
        assert data["guard"] == "AttendanceGate"
        assert GuardResult.allow().message is None
