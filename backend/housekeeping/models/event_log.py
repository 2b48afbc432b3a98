"""
Event log model for the assignment audit trail.

Append-only ledger of successful transitions.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, JSON, Uuid
from sqlalchemy.dialects.postgresql import JSONB

from housekeeping.db.postgres import Base


class EventLog(Base):
    """Append-only audit ledger."""

    __tablename__ = "event_log"

    event_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    event_type = Column(String(100), nullable=False)  # Assignment.Started, Room.DndRetrieved, ...

    assignment_id = Column(Uuid(as_uuid=True), nullable=True)
    room_id = Column(Uuid(as_uuid=True), nullable=True)
    actor_user_id = Column(Uuid(as_uuid=True), nullable=True)

    payload_json = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
