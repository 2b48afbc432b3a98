"""
SQLAlchemy models for the housekeeping backend.
"""

from .staff import StaffMember, StaffAttendance, AttendanceStatus
from .room import Room, RoomStatus
from .assignment import RoomAssignment, AssignmentStatus, AssignmentType, AssignmentPriority
from .event_log import EventLog

__all__ = [
    # Staff
    "StaffMember",
    "StaffAttendance",
    "AttendanceStatus",
    # Rooms
    "Room",
    "RoomStatus",
    # Assignments
    "RoomAssignment",
    "AssignmentStatus",
    "AssignmentType",
    "AssignmentPriority",
    # Audit
    "EventLog",
]
