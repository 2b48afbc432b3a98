"""
DNDWorkflow: Do-Not-Disturb marking and retrieval.

DND is a completion variant, not a status. Marking and retrieving touch
the assignment and its room; both rows are written in one transaction by
the repository, so either both change or neither does.
"""

from datetime import datetime
from typing import Iterable, Optional

from housekeeping.errors import ConcurrentModificationError
from housekeeping.guards import Actor, RejectionReason
from housekeeping.models import AssignmentStatus
from housekeeping.services.notifications import ChangeEvent
from housekeeping.services.transition import TransitionResult, TransitionService, as_uuid

MARKABLE = (AssignmentStatus.ASSIGNED, AssignmentStatus.IN_PROGRESS)


def _is_dnd_completed(assignment) -> bool:
    return assignment.status == AssignmentStatus.COMPLETED and bool(assignment.is_dnd)


class DNDWorkflow(TransitionService):

    def mark(
        self,
        actor: Actor,
        assignment_id,
        evidence: Iterable[str],
        now: Optional[datetime] = None,
    ) -> TransitionResult:
        """
        Record the room as DND, completing the assignment.

        Requires at least one photo reference of the DND sign. Photo
        requirements for normal completion do not apply.
        """
        now = self._now(now)
        evidence = [ref for ref in (evidence or []) if ref]
        assignment, rejection = self._load(actor, assignment_id)
        if rejection:
            return rejection
        if assignment.status not in MARKABLE:
            return self._illegal(actor, assignment, "mark_dnd")
        if not evidence:
            return self._reject(actor, assignment.assignment_id, TransitionResult.rejected(
                RejectionReason.DND_PHOTO_REQUIRED, assignment,
            ))

        try:
            updated = self._write(actor, assignment.assignment_id, lambda: self.repository.mark_dnd(
                assignment.assignment_id, MARKABLE, evidence, as_uuid(actor.user_id), now,
            ))
        except ConcurrentModificationError:
            return self._stale(actor, assignment.assignment_id, "mark_dnd")

        events = [ChangeEvent.ASSIGNMENT_CHANGED, ChangeEvent.ROOM_CHANGED]
        self._publish(updated, events, {"is_dnd": True})
        self.logger.info(f"DND marked assignment={updated.assignment_id} room={updated.room_id}")
        return TransitionResult.success(updated, events)

    def retrieve(self, actor: Actor, assignment_id, now: Optional[datetime] = None) -> TransitionResult:
        """
        Reopen a DND room.

        Only a completed assignment that was itself marked DND can be
        retrieved, and its room must still be flagged; anything else is
        rejected with not_dnd. A previously approved assignment gets an
        audit line in its notes and managers are alerted.
        """
        now = self._now(now)
        assignment, rejection = self._load(actor, assignment_id)
        if rejection:
            return rejection
        if assignment.status == AssignmentStatus.CANCELLED:
            return self._illegal(actor, assignment, "retrieve_dnd")
        if not _is_dnd_completed(assignment):
            return self._not_dnd(actor, assignment)

        room = self.repository.get_room(assignment.room_id)
        if room is None or not room.is_dnd:
            return self._not_dnd(actor, assignment)

        retrieved_by = actor.display_name or str(actor.user_id)
        revoked_note = f"[{now:%Y-%m-%d %H:%M}] DND retrieved by {retrieved_by}; supervisor approval revoked"

        try:
            updated, was_approved = self._write(actor, assignment.assignment_id, lambda: self.repository.retrieve_dnd(
                assignment.assignment_id,
                as_uuid(actor.user_id),
                now,
                self.settings.NEEDS_CLEANING_ROOM_STATUS,
                revoked_note,
            ))
        except ConcurrentModificationError:
            fresh = self.repository.get_assignment(assignment.assignment_id)
            room = self.repository.get_room(assignment.room_id)
            if fresh is None or not _is_dnd_completed(fresh) or room is None or not room.is_dnd:
                return self._not_dnd(actor, assignment)
            return self._stale(actor, assignment.assignment_id, "retrieve_dnd")

        events = [ChangeEvent.ASSIGNMENT_CHANGED, ChangeEvent.ROOM_CHANGED]
        if was_approved:
            events.append(ChangeEvent.NOTIFY_MANAGERS)
            self.logger.warning(
                f"Approved room reopened: assignment={updated.assignment_id} by={actor.user_id}"
            )
        self._publish(updated, events, {
            "is_dnd": False,
            "room_number": room.room_number,
            "approval_revoked": was_approved,
        })
        return TransitionResult.success(updated, events)

    def _not_dnd(self, actor: Actor, assignment) -> TransitionResult:
        return self._reject(actor, assignment.assignment_id, TransitionResult.rejected(
            RejectionReason.NOT_DND, assignment, room_id=str(assignment.room_id),
        ))
