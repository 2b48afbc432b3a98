"""
Staff member and attendance models.

Both are maintained by external HR/attendance tooling; this service reads
attendance and uses the staff row as the per-worker lock for starts.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Date, ForeignKey, Text, Uuid, Index
from sqlalchemy.orm import relationship

from housekeeping.db.postgres import Base


class AttendanceStatus:
    """Attendance record status values."""
    CHECKED_IN = "checked_in"
    ON_BREAK = "on_break"
    CHECKED_OUT = "checked_out"


class StaffMember(Base):
    """Hotel staff member."""

    __tablename__ = "staff_member"

    user_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    display_name = Column(String(255), nullable=True)
    role = Column(String(50), nullable=False)
    hotel = Column(String(255), nullable=True)
    status = Column(String(50), default="active", nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    assignments = relationship("RoomAssignment", back_populates="worker")
    attendance = relationship("StaffAttendance", back_populates="staff_member")


class StaffAttendance(Base):
    """One attendance record (check-in, break, check-out) for a work date."""

    __tablename__ = "staff_attendance"
    __table_args__ = (
        Index("ix_staff_attendance_user_day", "user_id", "work_date"),
    )

    attendance_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        Uuid(as_uuid=True), ForeignKey("staff_member.user_id"), nullable=False
    )
    work_date = Column(Date, nullable=False)
    status = Column(String(20), default=AttendanceStatus.CHECKED_IN, nullable=False)

    check_in_time = Column(DateTime, default=datetime.utcnow, nullable=False)
    check_out_time = Column(DateTime, nullable=True)
    break_started_at = Column(DateTime, nullable=True)
    break_ended_at = Column(DateTime, nullable=True)

    # Admin check-ins carry a marker string here
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    staff_member = relationship("StaffMember", back_populates="attendance")
