#!/usr/bin/env python3
"""
Seed a demo floor plan: one housekeeper, one supervisor, six rooms and a
day of assignments covering every queue bucket.

Prints bearer tokens for both staff members so the API can be exercised
with curl right away.
"""

import sys
import os
import uuid
from datetime import datetime, date

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from housekeeping.db.postgres import get_db_session, init_db
from housekeeping.models import (
    AssignmentStatus,
    AssignmentType,
    AttendanceStatus,
    Room,
    RoomAssignment,
    StaffAttendance,
    StaffMember,
)

HOTEL = "Harbour View"

ROOMS = [
    # room_number, floor, assignment_type, priority, ready_to_clean, status
    ("101", 1, AssignmentType.DAILY_CLEANING, 1, False, AssignmentStatus.ASSIGNED),
    ("102", 1, AssignmentType.CHECKOUT_CLEANING, 1, True, AssignmentStatus.ASSIGNED),
    ("103", 1, AssignmentType.CHECKOUT_CLEANING, 1, False, AssignmentStatus.ASSIGNED),
    ("201", 2, AssignmentType.DAILY_CLEANING, 3, False, AssignmentStatus.ASSIGNED),
    ("202", 2, AssignmentType.DEEP_CLEANING, 2, False, AssignmentStatus.ASSIGNED),
    ("301", 3, AssignmentType.DAILY_CLEANING, 1, False, AssignmentStatus.COMPLETED),
]


def seed_demo(db, work_date: date):
    """Insert the demo rows. Returns the created staff members."""
    now = datetime.utcnow()

    housekeeper = StaffMember(user_id=uuid.uuid4(), display_name="Maria", role="housekeeping", hotel=HOTEL)
    supervisor = StaffMember(user_id=uuid.uuid4(), display_name="Lead", role="housekeeping_manager", hotel=HOTEL)
    db.add_all([housekeeper, supervisor])
    db.flush()

    db.add(StaffAttendance(
        user_id=housekeeper.user_id,
        work_date=work_date,
        status=AttendanceStatus.CHECKED_IN,
        check_in_time=now,
    ))

    for room_number, floor, assignment_type, priority, ready, status in ROOMS:
        room = Room(room_id=uuid.uuid4(), hotel=HOTEL, room_number=room_number, floor_number=floor)
        db.add(room)
        db.flush()
        db.add(RoomAssignment(
            room_id=room.room_id,
            assigned_to=housekeeper.user_id,
            assigned_by=supervisor.user_id,
            assignment_date=work_date,
            assignment_type=assignment_type,
            status=status,
            priority=priority,
            ready_to_clean=ready,
            completed_at=now if status == AssignmentStatus.COMPLETED else None,
            completion_photos=["demo/301-bed.jpg"] if status == AssignmentStatus.COMPLETED else [],
        ))

    db.commit()
    print(f"  Created {len(ROOMS)} rooms and assignments for {work_date.isoformat()}")
    return {"housekeeper": housekeeper, "supervisor": supervisor}


def main():
    from housekeeping.services.auth import get_auth_service

    print("\n--- Seeding housekeeping demo ---")
    init_db()
    db = get_db_session()
    try:
        staff = seed_demo(db, date.today())
        auth = get_auth_service()
        for label, member in staff.items():
            token = auth.create_access_token(member.user_id, member.role, member.display_name)
            print(f"\n  {label} ({member.role}) {member.user_id}")
            print(f"  Authorization: Bearer {token}")
    except Exception as e:
        db.rollback()
        print(f"\nERROR: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
