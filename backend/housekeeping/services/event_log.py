"""
EventLogService: append-only audit of assignment transitions.

Rows are written in the same transaction as the state change they
describe, so the ledger never records a transition that rolled back.
"""

import uuid
from typing import Optional, Dict, Any
from sqlalchemy.orm import Session as DbSession

from housekeeping.db.postgres import get_db_session
from housekeeping.models import EventLog


class EventLogService:
    """
    Append-only audit event logging.

    Event types:
    - Assignment.Started / Assignment.Completed / Assignment.Cancelled
    - Assignment.DndMarked / Assignment.DndRetrieved
    - Assignment.PhotosAdded / Assignment.ReadyToClean / Assignment.NoteAdded
    - Assignment.Reviewed
    """

    STARTED = "Assignment.Started"
    COMPLETED = "Assignment.Completed"
    CANCELLED = "Assignment.Cancelled"
    DND_MARKED = "Assignment.DndMarked"
    DND_RETRIEVED = "Assignment.DndRetrieved"
    PHOTOS_ADDED = "Assignment.PhotosAdded"
    READY_TO_CLEAN = "Assignment.ReadyToClean"
    NOTE_ADDED = "Assignment.NoteAdded"
    REVIEWED = "Assignment.Reviewed"

    def __init__(self, db_session: Optional[DbSession] = None):
        self._explicit_db = db_session  # Only set if explicitly passed

    @property
    def db(self) -> DbSession:
        if self._explicit_db is not None:
            return self._explicit_db
        return get_db_session()

    def append_event(
        self,
        event_type: str,
        assignment_id: Optional[uuid.UUID] = None,
        room_id: Optional[uuid.UUID] = None,
        actor_user_id: Optional[uuid.UUID] = None,
        payload: Optional[Dict[str, Any]] = None,
        commit: bool = True,
    ) -> EventLog:
        """
        Append an event to the audit log.

        This is INSERT-only; events are never updated or deleted. Pass
        commit=False to stage the row inside a caller's transaction.
        """
        event = EventLog(
            event_type=event_type,
            assignment_id=assignment_id,
            room_id=room_id,
            actor_user_id=actor_user_id,
            payload_json=self._jsonable(payload) if payload else None,
        )
        self.db.add(event)
        if commit:
            self.db.commit()
        return event

    def list_for_assignment(self, assignment_id: uuid.UUID):
        """Audit trail for one assignment, oldest first."""
        return (
            self.db.query(EventLog)
            .filter(EventLog.assignment_id == assignment_id)
            .order_by(EventLog.created_at)
            .all()
        )

    def _jsonable(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Stringify UUIDs/datetimes so the payload fits a JSON column."""
        cleaned = {}
        for key, value in payload.items():
            if isinstance(value, dict):
                cleaned[key] = self._jsonable(value)
            elif isinstance(value, (list, tuple)):
                cleaned[key] = [self._scalar(v) for v in value]
            else:
                cleaned[key] = self._scalar(value)
        return cleaned

    @staticmethod
    def _scalar(value):
        if value is None or isinstance(value, (bool, int, float, str)):
            return value
        if hasattr(value, "isoformat"):
            return value.isoformat()
        return str(value)
