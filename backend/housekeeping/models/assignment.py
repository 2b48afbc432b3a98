"""
Room assignment model: one unit of housekeeping work for a room on a date.
"""

import uuid
from datetime import datetime
from sqlalchemy import (
    Column, String, DateTime, Date, ForeignKey, Integer, Boolean, Text, JSON, Uuid, Index,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from housekeeping.db.postgres import Base


# =============================================================================
# Enums (as string constants for flexibility)
# =============================================================================

class AssignmentStatus:
    """Assignment status values."""
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    ALL = (ASSIGNED, IN_PROGRESS, COMPLETED, CANCELLED)


class AssignmentType:
    """Assignment type values (immutable after creation)."""
    DAILY_CLEANING = "daily_cleaning"
    CHECKOUT_CLEANING = "checkout_cleaning"
    MAINTENANCE = "maintenance"
    DEEP_CLEANING = "deep_cleaning"

    ALL = (DAILY_CLEANING, CHECKOUT_CLEANING, MAINTENANCE, DEEP_CLEANING)


class AssignmentPriority:
    """Scheduler-assigned priority (1-3)."""
    NORMAL = 1
    MEDIUM = 2
    HIGH = 3


PhotoList = JSON().with_variant(JSONB(), "postgresql")


class RoomAssignment(Base):
    """
    Housekeeping assignment.

    Created with status=assigned by the external scheduler, then mutated
    only through AssignmentStateMachine and DNDWorkflow. Never deleted here.
    """

    __tablename__ = "room_assignment"
    __table_args__ = (
        Index("ix_room_assignment_worker_day_status", "assigned_to", "assignment_date", "status"),
    )

    assignment_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    room_id = Column(Uuid(as_uuid=True), ForeignKey("room.room_id"), nullable=False)
    assigned_to = Column(
        Uuid(as_uuid=True), ForeignKey("staff_member.user_id"), nullable=False
    )
    assigned_by = Column(Uuid(as_uuid=True), nullable=True)

    assignment_date = Column(Date, nullable=False)
    assignment_type = Column(String(32), default=AssignmentType.DAILY_CLEANING, nullable=False)
    status = Column(String(20), default=AssignmentStatus.ASSIGNED, nullable=False)
    priority = Column(Integer, default=AssignmentPriority.NORMAL, nullable=False)

    # Checkout rooms only: guest has left
    ready_to_clean = Column(Boolean, default=False, nullable=False)

    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    # Ordered photo references; DND evidence refs are mirrored in dnd_photos
    completion_photos = Column(PhotoList, default=list, nullable=False)
    dnd_photos = Column(PhotoList, default=list, nullable=False)

    # Do-Not-Disturb
    is_dnd = Column(Boolean, default=False, nullable=False)
    dnd_marked_at = Column(DateTime, nullable=True)
    dnd_marked_by = Column(Uuid(as_uuid=True), nullable=True)

    # Supervisor sign-off
    supervisor_approved = Column(Boolean, nullable=True)
    supervisor_approved_by = Column(Uuid(as_uuid=True), nullable=True)
    supervisor_approved_at = Column(DateTime, nullable=True)

    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    room = relationship("Room", back_populates="assignments", lazy="joined")
    worker = relationship("StaffMember", back_populates="assignments")

    def to_dict(self):
        room = self.room
        return {
            "assignment_id": str(self.assignment_id),
            "room_id": str(self.room_id),
            "room_number": room.room_number if room else None,
            "floor_number": room.floor_number if room else None,
            "hotel": room.hotel if room else None,
            "assigned_to": str(self.assigned_to),
            "assignment_date": self.assignment_date.isoformat(),
            "assignment_type": self.assignment_type,
            "status": self.status,
            "priority": self.priority,
            "ready_to_clean": self.ready_to_clean,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "completion_photos": list(self.completion_photos or []),
            "is_dnd": self.is_dnd,
            "dnd_marked_at": self.dnd_marked_at.isoformat() if self.dnd_marked_at else None,
            "dnd_marked_by": str(self.dnd_marked_by) if self.dnd_marked_by else None,
            "supervisor_approved": self.supervisor_approved,
            "supervisor_approved_by": (
                str(self.supervisor_approved_by) if self.supervisor_approved_by else None
            ),
            "supervisor_approved_at": (
                self.supervisor_approved_at.isoformat() if self.supervisor_approved_at else None
            ),
            "notes": self.notes,
        }
