"""
Base guard - template for every transition guard.

Guards are side-effect-free: they take freshly fetched facts in a
GuardContext and return a GuardResult. They never read the store and
never write; the state machine does both.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional
import logging


# =============================================================================
# Enums for standardized rejection values
# =============================================================================

class RejectionReason(str, Enum):
    """Expected, actionable reasons a transition is refused."""
    NOT_CHECKED_IN = "not_checked_in"
    ON_BREAK = "on_break"
    ALREADY_WORKING_ON = "already_working_on"
    PHOTOS_REQUIRED = "photos_required"
    NOT_DND = "not_dnd"
    DND_PHOTO_REQUIRED = "dnd_photo_required"
    NOT_ASSIGNEE = "not_assignee"
    NOT_CHECKOUT = "not_checkout"
    NOT_COMPLETED = "not_completed"
    ILLEGAL_TRANSITION = "illegal_transition"
    NOT_AUTHORIZED = "not_authorized"
    NOT_FOUND = "not_found"


REJECTION_MESSAGES = {
    RejectionReason.NOT_CHECKED_IN: "Please check in before starting work.",
    RejectionReason.ON_BREAK: "You are on break. End your break before starting a room.",
    RejectionReason.ALREADY_WORKING_ON: "You are already working on room {room_number}. Finish it first.",
    RejectionReason.PHOTOS_REQUIRED: "Completion photos are required before finishing a daily cleaning room.",
    RejectionReason.NOT_DND: "This room is no longer marked Do Not Disturb.",
    RejectionReason.DND_PHOTO_REQUIRED: "Take a photo of the DND sign before marking the room.",
    RejectionReason.NOT_ASSIGNEE: "This assignment belongs to another staff member.",
    RejectionReason.NOT_CHECKOUT: "Only checkout rooms can be marked ready to clean.",
    RejectionReason.NOT_COMPLETED: "Only completed rooms can be reviewed.",
    RejectionReason.ILLEGAL_TRANSITION: "This action is not allowed while the assignment is {status}.",
    RejectionReason.NOT_AUTHORIZED: "Only a manager can do this.",
    RejectionReason.NOT_FOUND: "Assignment not found.",
}


class _Unknown(dict):
    def __missing__(self, key):
        return "?"


def render_message(reason: RejectionReason, detail: Optional[Dict[str, Any]] = None) -> str:
    """Human-readable message for a rejection, filled from its detail."""
    return REJECTION_MESSAGES[reason].format_map(_Unknown(detail or {}))


# =============================================================================
# Data classes for context and results
# =============================================================================

@dataclass(frozen=True)
class Actor:
    """The staff member requesting a transition."""
    user_id: Any
    role: str
    display_name: Optional[str] = None

    def has_role(self, roles: FrozenSet[str]) -> bool:
        return self.role in roles


@dataclass
class GuardContext:
    """
    Facts a guard may look at. Every field is fetched immediately before
    the transition attempt; nothing here comes from rendered state.
    """

    actor: Actor
    work_date: Optional[date] = None

    # Candidate assignment (fresh row)
    assignment: Any = None

    # Latest attendance record for (actor, work_date), or None
    attendance: Any = None

    # The actor's other in_progress assignments on work_date
    active_assignments: List[Any] = field(default_factory=list)

    # Policy knobs (from config)
    single_task_roles: FrozenSet[str] = frozenset()
    manual_checkin_marker: Optional[str] = None


@dataclass(frozen=True)
class GuardResult:
    """Allow, or Deny with a single attributable reason."""

    allowed: bool
    reason: Optional[RejectionReason] = None
    detail: Dict[str, Any] = field(default_factory=dict)
    guard_name: str = ""

    @classmethod
    def allow(cls, guard_name: str = "") -> "GuardResult":
        return cls(allowed=True, guard_name=guard_name)

    @classmethod
    def deny(cls, reason: RejectionReason, guard_name: str = "", **detail) -> "GuardResult":
        return cls(allowed=False, reason=reason, detail=detail, guard_name=guard_name)

    @property
    def message(self) -> Optional[str]:
        if self.allowed:
            return None
        return render_message(self.reason, self.detail)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allowed": self.allowed,
            "reason": self.reason.value if self.reason else None,
            "message": self.message,
            "detail": self.detail,
            "guard": self.guard_name,
        }


# =============================================================================
# Base Guard
# =============================================================================

class BaseGuard(ABC):
    """
    Base class for transition guards.

    Subclasses must implement:
    - name: Guard identifier
    - _evaluate(): The rule

    Subclasses may override:
    - applies_to(): Skip the rule entirely (returns Allow)
    """

    def __init__(self):
        self.logger = logging.getLogger(f"guard.{self.name}")

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique guard name for logging and attribution."""

    @abstractmethod
    def _evaluate(self, context: GuardContext) -> GuardResult:
        """Core rule. Implement in subclass."""

    def applies_to(self, context: GuardContext) -> bool:
        return True

    def check(self, context: GuardContext) -> GuardResult:
        """
        Main entry point.

        DO NOT override this method. Override _evaluate/applies_to instead.
        """
        if not self.applies_to(context):
            return GuardResult.allow(self.name)

        result = self._evaluate(context)
        if not result.allowed:
            self.logger.info(
                f"{self.name} denied user={context.actor.user_id}: "
                f"{result.reason.value} {result.detail}"
            )
        return result

    def allow(self) -> GuardResult:
        return GuardResult.allow(self.name)

    def deny(self, reason: RejectionReason, **detail) -> GuardResult:
        return GuardResult.deny(reason, guard_name=self.name, **detail)
