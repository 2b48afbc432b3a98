"""
SupervisorApprovalService: sign-off on completed rooms.

Completion alone never marks a room clean; approval does. Rejection
records the decision and leaves the room as it was.

DND completions can be reviewed too. Approving one records the sign-off
but leaves the room alone, since nobody cleaned it; a later DND
retrieval revokes that approval.
"""

from datetime import datetime
from typing import Optional

from housekeeping.errors import ConcurrentModificationError
from housekeeping.guards import Actor, RejectionReason
from housekeeping.models import AssignmentStatus, RoomStatus
from housekeeping.services.notifications import ChangeEvent
from housekeeping.services.transition import TransitionResult, TransitionService, as_uuid


class SupervisorApprovalService(TransitionService):

    def review(
        self,
        actor: Actor,
        assignment_id,
        approved: bool,
        note: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> TransitionResult:
        now = self._now(now)
        assignment, rejection = self._load(actor, assignment_id)
        if rejection:
            return rejection
        rejection = self._require_manager(actor, assignment)
        if rejection:
            return rejection
        if not self._reviewable(assignment):
            return self._not_completed(actor, assignment)

        verdict = "approved" if approved else "rejected"
        note = (note or "").strip()
        note_line = f"Supervisor {verdict}: {note}" if note else None

        try:
            updated = self._write(actor, assignment.assignment_id, lambda: self.repository.review(
                assignment.assignment_id,
                approved,
                as_uuid(actor.user_id),
                now,
                note_line,
                RoomStatus.CLEAN,
            ))
        except ConcurrentModificationError:
            fresh = self.repository.get_assignment(assignment.assignment_id)
            return self._not_completed(actor, fresh or assignment)

        events = [ChangeEvent.ASSIGNMENT_CHANGED]
        if approved and not updated.is_dnd:
            events.append(ChangeEvent.ROOM_CHANGED)
        self._publish(updated, events, {"supervisor_approved": approved})
        return TransitionResult.success(updated, events)

    @staticmethod
    def _reviewable(assignment) -> bool:
        return assignment.status == AssignmentStatus.COMPLETED

    def _not_completed(self, actor: Actor, assignment) -> TransitionResult:
        return self._reject(actor, assignment.assignment_id, TransitionResult.rejected(
            RejectionReason.NOT_COMPLETED, assignment, status=assignment.status, is_dnd=bool(assignment.is_dnd),
        ))
