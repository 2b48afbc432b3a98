"""
Pytest configuration for all tests.
Sets up Python path to find the backend housekeeping package.
"""

import sys
import os
import uuid
from datetime import date, datetime

import pytest

# Add backend directory to Python path
backend_path = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'backend'))
if backend_path not in sys.path:
    sys.path.insert(0, backend_path)


WORK_DATE = date(2024, 5, 1)


@pytest.fixture
def sqlite_session():
    """In-memory SQLite bound as the application engine, with all tables."""
    from sqlalchemy import create_engine
    from sqlalchemy.pool import StaticPool

    from housekeeping.db import postgres

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    postgres.bind_engine(engine)
    postgres.init_db()

    session = postgres.get_db_session()
    yield session

    postgres.close_db_session()
    postgres.Base.metadata.drop_all(engine)
    postgres.bind_engine(None)
    engine.dispose()


@pytest.fixture
def seed(sqlite_session):
    """Factory helpers that insert rows and commit."""
    from housekeeping.models import (
        AttendanceStatus,
        Room,
        RoomAssignment,
        StaffAttendance,
        StaffMember,
    )

    class Seed:
        session = sqlite_session

        def staff(self, role="housekeeping", display_name="Maria"):
            member = StaffMember(user_id=uuid.uuid4(), role=role, display_name=display_name, hotel="Harbour")
            self.session.add(member)
            self.session.commit()
            return member

        def room(self, room_number="101", floor_number=1, **fields):
            room = Room(room_id=uuid.uuid4(), hotel="Harbour", room_number=room_number,
                        floor_number=floor_number, **fields)
            self.session.add(room)
            self.session.commit()
            return room

        def attendance(self, member, status=AttendanceStatus.CHECKED_IN, notes=None,
                       created_at=None, work_date=WORK_DATE):
            record = StaffAttendance(
                user_id=member.user_id,
                work_date=work_date,
                status=status,
                notes=notes,
                check_in_time=datetime(2024, 5, 1, 7, 0),
                created_at=created_at or datetime(2024, 5, 1, 7, 0),
            )
            self.session.add(record)
            self.session.commit()
            return record

        def assignment(self, member, room, **fields):
            values = dict(
                assignment_id=uuid.uuid4(),
                room_id=room.room_id,
                assigned_to=member.user_id,
                assignment_date=WORK_DATE,
                assignment_type="daily_cleaning",
                status="assigned",
                priority=1,
            )
            values.update(fields)
            assignment = RoomAssignment(**values)
            self.session.add(assignment)
            self.session.commit()
            return assignment

    return Seed()
