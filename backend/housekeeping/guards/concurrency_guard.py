"""
ConcurrencyGuard - one in_progress assignment per worker per day.

Only roles in the single-task set are checked; supervisory roles may hold
several rooms at once. This is the fast-path check. The repository repeats
the rule as a conditional write so two racing starts cannot both land.
"""

from housekeeping.models.assignment import AssignmentStatus

from .base import BaseGuard, GuardContext, GuardResult, RejectionReason


class ConcurrencyGuard(BaseGuard):

    @property
    def name(self) -> str:
        return "ConcurrencyGuard"

    def applies_to(self, context: GuardContext) -> bool:
        return context.actor.has_role(context.single_task_roles)

    def _evaluate(self, context: GuardContext) -> GuardResult:
        candidate_id = context.assignment.assignment_id if context.assignment is not None else None

        for other in context.active_assignments:
            if other.assignment_id == candidate_id:
                continue
            if other.status != AssignmentStatus.IN_PROGRESS:
                continue
            room = getattr(other, "room", None)
            return self.deny(
                RejectionReason.ALREADY_WORKING_ON,
                assignment_id=str(other.assignment_id),
                room_id=str(other.room_id),
                room_number=room.room_number if room is not None else str(other.room_id),
            )

        return self.allow()
