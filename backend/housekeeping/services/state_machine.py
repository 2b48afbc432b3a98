"""
AssignmentStateMachine: the canonical transition function.

    assigned ──start──▶ in_progress ──complete──▶ completed
        │                    │                        │
        └──────────────── cancel ─────────────────────┴──▶ cancelled

DND marking and retrieval live in DNDWorkflow and are reachable from
here. Every guard is evaluated against facts read from the store at the
moment of the call; the repository repeats the critical ones as
conditional writes.
"""

from datetime import datetime
from typing import Iterable, Optional

from housekeeping.errors import ConcurrentModificationError
from housekeeping.guards import (
    Actor,
    AttendanceGate,
    ConcurrencyGuard,
    GuardContext,
    PhotoRequirementPolicy,
    RejectionReason,
)
from housekeeping.models import AssignmentStatus, AssignmentType
from housekeeping.services.dnd_workflow import DNDWorkflow
from housekeeping.services.event_log import EventLogService
from housekeeping.services.notifications import ChangeEvent
from housekeeping.services.transition import (
    TransitionResult,
    TransitionService,
    as_uuid,
    same_user,
)

CANCELLABLE = (
    AssignmentStatus.ASSIGNED,
    AssignmentStatus.IN_PROGRESS,
    AssignmentStatus.COMPLETED,
)
PHOTO_STATUSES = (AssignmentStatus.ASSIGNED, AssignmentStatus.IN_PROGRESS)


class AssignmentStateMachine(TransitionService):

    def __init__(self, repository=None, notifications=None, settings=None, dnd_workflow=None):
        super().__init__(repository, notifications, settings)
        self.attendance_gate = AttendanceGate()
        self.concurrency_guard = ConcurrencyGuard()
        self.photo_policy = PhotoRequirementPolicy()
        self.dnd = dnd_workflow or DNDWorkflow(self.repository, self.notifications, self.settings)

    # -------------------------------------------------------------------------
    # Guard context
    # -------------------------------------------------------------------------

    def _worker(self, actor: Actor, assignment) -> Actor:
        """The staff member whose attendance and workload the start guards check."""
        if same_user(actor.user_id, assignment.assigned_to):
            return Actor(assignment.assigned_to, actor.role, actor.display_name)
        staff = self.repository.get_staff_member(assignment.assigned_to)
        if staff is None:
            return Actor(assignment.assigned_to, "")
        return Actor(staff.user_id, staff.role, staff.display_name)

    def _start_context(self, worker: Actor, assignment) -> GuardContext:
        work_date = assignment.assignment_date
        return GuardContext(
            actor=worker,
            work_date=work_date,
            assignment=assignment,
            attendance=self.repository.get_latest_attendance(worker.user_id, work_date),
            active_assignments=self.repository.get_active_assignments(worker.user_id, work_date),
            single_task_roles=self.settings.SINGLE_TASK_ROLES,
            manual_checkin_marker=self.settings.MANUAL_CHECKIN_MARKER,
        )

    # -------------------------------------------------------------------------
    # assigned -> in_progress
    # -------------------------------------------------------------------------

    def start(self, actor: Actor, assignment_id, now: Optional[datetime] = None) -> TransitionResult:
        now = self._now(now)
        assignment, rejection = self._load(actor, assignment_id)
        if rejection:
            return rejection
        if assignment.status != AssignmentStatus.ASSIGNED:
            return self._illegal(actor, assignment, "start")

        worker = self._worker(actor, assignment)
        context = self._start_context(worker, assignment)
        for guard in (self.attendance_gate, self.concurrency_guard):
            result = guard.check(context)
            if not result.allowed:
                return TransitionResult.from_guard(result, assignment)

        try:
            updated = self._write(actor, assignment.assignment_id, lambda: self.repository.start_assignment(
                assignment.assignment_id,
                worker.user_id,
                assignment.assignment_date,
                now,
                worker.has_role(self.settings.SINGLE_TASK_ROLES),
                as_uuid(actor.user_id),
            ))
        except ConcurrentModificationError:
            return self._rediagnose_start(actor, worker, assignment.assignment_id)

        events = [ChangeEvent.ASSIGNMENT_CHANGED]
        self._publish(updated, events)
        self.logger.info(f"Started assignment={updated.assignment_id} worker={worker.user_id}")
        return TransitionResult.success(updated, events)

    def _rediagnose_start(self, actor: Actor, worker: Actor, assignment_id) -> TransitionResult:
        """A conditional start matched nothing: report what actually changed."""
        assignment = self.repository.get_assignment(assignment_id)
        if assignment is None:
            return self._reject(actor, assignment_id, TransitionResult.rejected(
                RejectionReason.NOT_FOUND, assignment_id=str(assignment_id),
            ))
        if assignment.status != AssignmentStatus.ASSIGNED:
            return self._illegal(actor, assignment, "start")

        result = self.concurrency_guard.check(self._start_context(worker, assignment))
        if not result.allowed:
            return TransitionResult.from_guard(result, assignment)
        return self._illegal(actor, assignment, "start")

    # -------------------------------------------------------------------------
    # in_progress -> completed
    # -------------------------------------------------------------------------

    def complete(self, actor: Actor, assignment_id, now: Optional[datetime] = None) -> TransitionResult:
        now = self._now(now)
        assignment, rejection = self._load(actor, assignment_id)
        if rejection:
            return rejection
        if assignment.status != AssignmentStatus.IN_PROGRESS:
            return self._illegal(actor, assignment, "complete")

        result = self.photo_policy.check(GuardContext(actor=actor, assignment=assignment))
        if not result.allowed:
            return TransitionResult.from_guard(result, assignment)

        try:
            updated = self._write(actor, assignment.assignment_id, lambda: self.repository.update_status(
                assignment.assignment_id,
                [AssignmentStatus.IN_PROGRESS],
                {"status": AssignmentStatus.COMPLETED, "completed_at": now},
                EventLogService.COMPLETED,
                as_uuid(actor.user_id),
                {
                    "from": AssignmentStatus.IN_PROGRESS,
                    "to": AssignmentStatus.COMPLETED,
                    "photos": len(assignment.completion_photos or []),
                },
            ))
        except ConcurrentModificationError:
            return self._stale(actor, assignment.assignment_id, "complete")

        # Room cleanliness stays untouched until a supervisor signs off
        events = [ChangeEvent.ASSIGNMENT_CHANGED, ChangeEvent.AWAITING_SUPERVISOR_APPROVAL]
        self._publish(updated, events)
        return TransitionResult.success(updated, events)

    # -------------------------------------------------------------------------
    # * -> cancelled
    # -------------------------------------------------------------------------

    def cancel(self, actor: Actor, assignment_id, now: Optional[datetime] = None) -> TransitionResult:
        now = self._now(now)
        assignment, rejection = self._load(actor, assignment_id)
        if rejection:
            return rejection
        rejection = self._require_manager(actor, assignment)
        if rejection:
            return rejection
        if assignment.status not in CANCELLABLE:
            return self._illegal(actor, assignment, "cancel")

        try:
            updated = self._write(actor, assignment.assignment_id, lambda: self.repository.cancel_assignment(
                assignment.assignment_id, CANCELLABLE, as_uuid(actor.user_id), now,
            ))
        except ConcurrentModificationError:
            return self._stale(actor, assignment.assignment_id, "cancel")

        events = [ChangeEvent.ASSIGNMENT_CHANGED]
        if assignment.is_dnd:
            events.append(ChangeEvent.ROOM_CHANGED)
        self._publish(updated, events)
        return TransitionResult.success(updated, events)

    # -------------------------------------------------------------------------
    # DND sub-workflow
    # -------------------------------------------------------------------------

    def mark_dnd(self, actor: Actor, assignment_id, evidence: Iterable[str], now=None) -> TransitionResult:
        return self.dnd.mark(actor, assignment_id, evidence, now)

    def retrieve_dnd(self, actor: Actor, assignment_id, now=None) -> TransitionResult:
        return self.dnd.retrieve(actor, assignment_id, now)

    # -------------------------------------------------------------------------
    # Field updates that do not change status
    # -------------------------------------------------------------------------

    def add_completion_photos(self, actor: Actor, assignment_id, refs: Iterable[str]) -> TransitionResult:
        refs = [r for r in (refs or []) if r]
        assignment, rejection = self._load(actor, assignment_id)
        if rejection:
            return rejection
        if assignment.status not in PHOTO_STATUSES:
            return self._illegal(actor, assignment, "add_photos")
        if not refs:
            return TransitionResult.success(assignment)

        try:
            updated = self._write(actor, assignment.assignment_id, lambda: self.repository.add_photos(
                assignment.assignment_id, refs, PHOTO_STATUSES, as_uuid(actor.user_id),
            ))
        except ConcurrentModificationError:
            return self._stale(actor, assignment.assignment_id, "add_photos")

        events = [ChangeEvent.ASSIGNMENT_CHANGED]
        self._publish(updated, events)
        return TransitionResult.success(updated, events)

    def mark_ready_to_clean(self, actor: Actor, assignment_id) -> TransitionResult:
        """Guest has checked out; the room can be serviced."""
        assignment, rejection = self._load(actor, assignment_id)
        if rejection:
            return rejection
        rejection = self._require_manager(actor, assignment)
        if rejection:
            return rejection
        if assignment.assignment_type != AssignmentType.CHECKOUT_CLEANING:
            return self._reject(actor, assignment.assignment_id, TransitionResult.rejected(
                RejectionReason.NOT_CHECKOUT, assignment, assignment_type=assignment.assignment_type,
            ))
        if assignment.status != AssignmentStatus.ASSIGNED:
            return self._illegal(actor, assignment, "mark_ready_to_clean")

        try:
            updated = self._write(actor, assignment.assignment_id, lambda: self.repository.update_status(
                assignment.assignment_id,
                [AssignmentStatus.ASSIGNED],
                {"ready_to_clean": True},
                EventLogService.READY_TO_CLEAN,
                as_uuid(actor.user_id),
            ))
        except ConcurrentModificationError:
            return self._stale(actor, assignment.assignment_id, "mark_ready_to_clean")

        events = [ChangeEvent.ASSIGNMENT_CHANGED]
        self._publish(updated, events)
        return TransitionResult.success(updated, events)

    def append_note(self, actor: Actor, assignment_id, text: str, now=None) -> TransitionResult:
        now = self._now(now)
        assignment, rejection = self._load(actor, assignment_id)
        if rejection:
            return rejection
        text = (text or "").strip()
        if not text:
            return TransitionResult.success(assignment)

        author = actor.display_name or str(actor.user_id)
        line = f"[{now:%Y-%m-%d %H:%M}] {author}: {text}"
        try:
            updated = self._write(actor, assignment.assignment_id, lambda: self.repository.append_note(
                assignment.assignment_id, line, as_uuid(actor.user_id),
            ))
        except ConcurrentModificationError:
            return self._stale(actor, assignment.assignment_id, "append_note")

        events = [ChangeEvent.ASSIGNMENT_CHANGED]
        self._publish(updated, events)
        return TransitionResult.success(updated, events)

