"""
Shared plumbing for services that move assignments between states.

TransitionResult is what every operation returns. Policy rejections are
results, not exceptions; only infrastructure failures raise.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from housekeeping.config import config
from housekeeping.errors import RepositoryError
from housekeeping.guards import Actor, GuardResult, RejectionReason, render_message
from housekeeping.services.notifications import (
    ChangeEvent,
    NotificationService,
    get_notification_service,
)
from housekeeping.services.repository import AssignmentRepository


@dataclass
class TransitionResult:
    ok: bool
    assignment: Any = None
    reason: Optional[RejectionReason] = None
    detail: Dict[str, Any] = field(default_factory=dict)
    events: List[str] = field(default_factory=list)

    @classmethod
    def success(cls, assignment, events: Optional[List[str]] = None) -> "TransitionResult":
        return cls(ok=True, assignment=assignment, events=list(events or []))

    @classmethod
    def rejected(cls, reason: RejectionReason, assignment=None, **detail) -> "TransitionResult":
        return cls(ok=False, assignment=assignment, reason=reason, detail=detail)

    @classmethod
    def from_guard(cls, result: GuardResult, assignment=None) -> "TransitionResult":
        return cls(ok=False, assignment=assignment, reason=result.reason, detail=dict(result.detail))

    @property
    def message(self) -> Optional[str]:
        if self.ok:
            return None
        return render_message(self.reason, self.detail)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"ok": self.ok}
        if self.assignment is not None:
            data["assignment"] = self.assignment.to_dict()
        if self.ok:
            data["events"] = list(self.events)
        else:
            data["reason"] = self.reason.value
            data["message"] = self.message
            data["detail"] = self.detail
        return data


def as_uuid(value) -> Optional[uuid.UUID]:
    if value is None or isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def same_user(left, right) -> bool:
    return left is not None and right is not None and str(left) == str(right)


class TransitionService:
    """
    Base for AssignmentStateMachine, DNDWorkflow and
    SupervisorApprovalService: fresh loading, authorization, publishing.
    """

    def __init__(
        self,
        repository: Optional[AssignmentRepository] = None,
        notifications: Optional[NotificationService] = None,
        settings=None,
    ):
        self.repository = repository or AssignmentRepository()
        self.notifications = notifications or get_notification_service()
        self.settings = settings or config
        self.logger = logging.getLogger(f"service.{type(self).__name__}")

    def _now(self, now: Optional[datetime]) -> datetime:
        return now or datetime.utcnow()

    def is_manager(self, actor: Actor) -> bool:
        return actor.has_role(self.settings.MANAGER_ROLES)

    def _load(self, actor: Actor, assignment_id) -> Tuple[Any, Optional[TransitionResult]]:
        """
        Fresh read of the assignment plus the ownership check.

        Returns (assignment, None) or (assignment_or_None, rejection).
        """
        key = as_uuid(assignment_id)
        assignment = self.repository.get_assignment(key) if key is not None else None
        if assignment is None:
            return None, self._reject(actor, assignment_id, TransitionResult.rejected(
                RejectionReason.NOT_FOUND, assignment_id=str(assignment_id),
            ))

        if not same_user(actor.user_id, assignment.assigned_to) and not self.is_manager(actor):
            return assignment, self._reject(actor, assignment_id, TransitionResult.rejected(
                RejectionReason.NOT_ASSIGNEE, assignment,
            ))

        return assignment, None

    def _require_manager(self, actor: Actor, assignment) -> Optional[TransitionResult]:
        if self.is_manager(actor):
            return None
        return self._reject(actor, assignment.assignment_id, TransitionResult.rejected(
            RejectionReason.NOT_AUTHORIZED, assignment, role=actor.role,
        ))

    def _illegal(self, actor: Actor, assignment, action: str) -> TransitionResult:
        return self._reject(actor, assignment.assignment_id, TransitionResult.rejected(
            RejectionReason.ILLEGAL_TRANSITION, assignment, status=assignment.status, action=action,
        ))

    def _stale(self, actor: Actor, assignment_id, action: str) -> TransitionResult:
        """The row moved between our read and the conditional write."""
        assignment = self.repository.get_assignment(assignment_id)
        if assignment is None:
            return self._reject(actor, assignment_id, TransitionResult.rejected(
                RejectionReason.NOT_FOUND, assignment_id=str(assignment_id),
            ))
        return self._illegal(actor, assignment, action)

    def _reject(self, actor: Actor, assignment_id, result: TransitionResult) -> TransitionResult:
        self.logger.info(
            f"Rejected assignment={assignment_id} user={actor.user_id}: "
            f"{result.reason.value} {result.detail}"
        )
        return result

    def _write(self, actor: Actor, assignment_id, write):
        """Run a repository write, logging infrastructure failures with context."""
        try:
            return write()
        except RepositoryError as e:
            self.logger.error(f"Write failed assignment={assignment_id} user={actor.user_id}: {e}")
            raise

    def _publish(self, assignment, events: List[str], payload: Optional[Dict[str, Any]] = None):
        """Publish after commit. Manager alerts go to the managers feed."""
        body = {
            "assignment_id": str(assignment.assignment_id),
            "room_id": str(assignment.room_id),
            "status": assignment.status,
        }
        body.update(payload or {})
        for event in events:
            if event == ChangeEvent.NOTIFY_MANAGERS:
                self.notifications.notify_managers(body)
            else:
                self.notifications.publish(assignment.assigned_to, event, body)
