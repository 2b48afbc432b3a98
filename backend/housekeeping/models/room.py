"""
Room model. Owned by the property management side; this service only
touches the DND mirror, cleanliness status and last-cleaned stamps.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer, Boolean, Uuid
from sqlalchemy.orm import relationship

from housekeeping.db.postgres import Base


class RoomStatus:
    """Room cleanliness status values."""
    CLEAN = "clean"
    DIRTY = "dirty"
    OUT_OF_ORDER = "out_of_order"
    MAINTENANCE = "maintenance"


class Room(Base):
    """Hotel room."""

    __tablename__ = "room"

    room_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    hotel = Column(String(255), nullable=False)
    room_number = Column(String(20), nullable=False)
    floor_number = Column(Integer, nullable=True)
    status = Column(String(20), default=RoomStatus.DIRTY, nullable=True)

    is_dnd = Column(Boolean, default=False, nullable=False)
    dnd_marked_at = Column(DateTime, nullable=True)
    dnd_marked_by = Column(Uuid(as_uuid=True), nullable=True)

    last_cleaned_at = Column(DateTime, nullable=True)
    last_cleaned_by = Column(Uuid(as_uuid=True), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    assignments = relationship("RoomAssignment", back_populates="room")
