"""
PhotoRequirementPolicy - daily cleaning needs proof of work before completion.

The assignment passed in must be re-read from the store: photos are
captured by a separate flow and may have landed after the queue rendered.
"""

from housekeeping.models.assignment import AssignmentType

from .base import BaseGuard, GuardContext, GuardResult, RejectionReason


class PhotoRequirementPolicy(BaseGuard):

    REQUIRED_FOR = frozenset({AssignmentType.DAILY_CLEANING})

    @property
    def name(self) -> str:
        return "PhotoRequirementPolicy"

    def applies_to(self, context: GuardContext) -> bool:
        return context.assignment.assignment_type in self.REQUIRED_FOR

    def _evaluate(self, context: GuardContext) -> GuardResult:
        if context.assignment.completion_photos:
            return self.allow()
        return self.deny(RejectionReason.PHOTOS_REQUIRED)
