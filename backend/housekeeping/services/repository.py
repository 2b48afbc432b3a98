"""
AssignmentRepository: the data-store boundary for assignments, rooms and
attendance.

Reads always bypass the identity map (populate_existing) so guards see
what is stored now, not what a previous request loaded. Every write is a
conditional UPDATE inside one transaction; a write that matches no row
raises ConcurrentModificationError and nothing is committed.
"""

import logging
import uuid
from contextlib import contextmanager
from datetime import date, datetime
from typing import Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as DbSession, aliased

from housekeeping.db.postgres import get_db_session, session_scope
from housekeeping.errors import ConcurrentModificationError, RepositoryError
from housekeeping.models import (
    AssignmentStatus,
    Room,
    RoomAssignment,
    StaffAttendance,
    StaffMember,
)
from housekeeping.services.event_log import EventLogService


def append_line(notes: Optional[str], line: str) -> str:
    """Append a line to free-text notes without touching what is there."""
    if not notes:
        return line
    return f"{notes}\n{line}"


def merge_refs(existing: Optional[Sequence[str]], new: Iterable[str]) -> List[str]:
    """Ordered union of photo references."""
    merged = list(existing or [])
    for ref in new:
        if ref and ref not in merged:
            merged.append(ref)
    return merged


class AssignmentRepository:
    """SQLAlchemy-backed store for the housekeeping workflow."""

    def __init__(self, db_session: Optional[DbSession] = None):
        self._explicit_db = db_session
        self.logger = logging.getLogger("service.AssignmentRepository")

    @property
    def db(self) -> DbSession:
        if self._explicit_db is not None:
            return self._explicit_db
        return get_db_session()

    # -------------------------------------------------------------------------
    # Transaction helpers
    # -------------------------------------------------------------------------

    @contextmanager
    def _reading(self, operation: str):
        try:
            yield self.db
        except SQLAlchemyError as e:
            self.db.rollback()
            self.logger.error(f"{operation} failed: {e}")
            raise RepositoryError(operation, e) from e

    @contextmanager
    def _transaction(self, operation: str):
        """One session_scope per write: every row it touches commits or none does."""
        try:
            with session_scope(self._explicit_db) as db:
                yield db
        except SQLAlchemyError as e:
            self.logger.error(f"{operation} failed: {e}")
            raise RepositoryError(operation, e) from e

    def _locked_assignment(self, db: DbSession, assignment_id: uuid.UUID) -> RoomAssignment:
        assignment = (
            db.query(RoomAssignment)
            .populate_existing()
            .filter(RoomAssignment.assignment_id == assignment_id)
            .with_for_update(of=RoomAssignment)
            .first()
        )
        if assignment is None:
            raise ConcurrentModificationError("RoomAssignment", assignment_id)
        return assignment

    @staticmethod
    def _check_rowcount(result, entity: str, entity_id) -> None:
        if result.rowcount != 1:
            raise ConcurrentModificationError(entity, entity_id)

    def _audit(self, db: DbSession, event_type: str, assignment_id, room_id, actor_id, payload=None):
        EventLogService(db).append_event(
            event_type=event_type,
            assignment_id=assignment_id,
            room_id=room_id,
            actor_user_id=actor_id,
            payload=payload,
            commit=False,
        )

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_assignment(self, assignment_id: uuid.UUID) -> Optional[RoomAssignment]:
        with self._reading("get_assignment") as db:
            return (
                db.query(RoomAssignment)
                .populate_existing()
                .filter(RoomAssignment.assignment_id == assignment_id)
                .first()
            )

    def get_room(self, room_id: uuid.UUID) -> Optional[Room]:
        with self._reading("get_room") as db:
            return (
                db.query(Room)
                .populate_existing()
                .filter(Room.room_id == room_id)
                .first()
            )

    def get_staff_member(self, user_id: uuid.UUID) -> Optional[StaffMember]:
        with self._reading("get_staff_member") as db:
            return db.query(StaffMember).filter(StaffMember.user_id == user_id).first()

    def get_latest_attendance(self, user_id: uuid.UUID, work_date: date) -> Optional[StaffAttendance]:
        """Most recently created attendance record for (user, work_date)."""
        with self._reading("get_latest_attendance") as db:
            return (
                db.query(StaffAttendance)
                .populate_existing()
                .filter(
                    StaffAttendance.user_id == user_id,
                    StaffAttendance.work_date == work_date,
                )
                .order_by(StaffAttendance.created_at.desc(), StaffAttendance.check_in_time.desc())
                .first()
            )

    def get_active_assignments(self, user_id: uuid.UUID, work_date: date) -> List[RoomAssignment]:
        """The worker's in_progress assignments on work_date."""
        return self.list_for_worker(user_id, work_date, statuses=[AssignmentStatus.IN_PROGRESS])

    def list_for_worker(
        self,
        user_id: uuid.UUID,
        work_date: date,
        statuses: Optional[Sequence[str]] = None,
    ) -> List[RoomAssignment]:
        with self._reading("list_for_worker") as db:
            query = (
                db.query(RoomAssignment)
                .populate_existing()
                .filter(
                    RoomAssignment.assigned_to == user_id,
                    RoomAssignment.assignment_date == work_date,
                )
            )
            if statuses:
                query = query.filter(RoomAssignment.status.in_(list(statuses)))
            return query.all()

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def start_assignment(
        self,
        assignment_id: uuid.UUID,
        worker_id: uuid.UUID,
        work_date: date,
        started_at: datetime,
        enforce_single_task: bool,
        actor_id: uuid.UUID,
    ) -> RoomAssignment:
        """
        assigned -> in_progress.

        Starts for the same worker are serialized on the staff row, and the
        UPDATE only matches when no other in_progress row exists for the
        worker/date, so at most one start can win.
        """
        with self._transaction("start_assignment") as db:
            (
                db.query(StaffMember)
                .filter(StaffMember.user_id == worker_id)
                .with_for_update()
                .first()
            )

            conditions = [
                RoomAssignment.assignment_id == assignment_id,
                RoomAssignment.status == AssignmentStatus.ASSIGNED,
            ]
            if enforce_single_task:
                other = aliased(RoomAssignment)
                conflict = (
                    db.query(other.assignment_id)
                    .filter(
                        other.assigned_to == worker_id,
                        other.assignment_date == work_date,
                        other.status == AssignmentStatus.IN_PROGRESS,
                        other.assignment_id != assignment_id,
                    )
                    .exists()
                )
                conditions.append(~conflict)

            result = db.execute(
                update(RoomAssignment)
                .where(*conditions)
                .values(
                    status=AssignmentStatus.IN_PROGRESS,
                    started_at=started_at,
                    updated_at=started_at,
                )
                .execution_options(synchronize_session=False)
            )
            self._check_rowcount(result, "RoomAssignment", assignment_id)
            self._audit(
                db, EventLogService.STARTED, assignment_id, None, actor_id,
                {"from": AssignmentStatus.ASSIGNED, "to": AssignmentStatus.IN_PROGRESS},
            )

        return self.get_assignment(assignment_id)

    def update_status(
        self,
        assignment_id: uuid.UUID,
        expected_statuses: Sequence[str],
        values: dict,
        event_type: str,
        actor_id: uuid.UUID,
        payload: Optional[dict] = None,
    ) -> RoomAssignment:
        """Single-record conditional update guarded by the expected prior status."""
        with self._transaction(f"update_status:{event_type}") as db:
            result = db.execute(
                update(RoomAssignment)
                .where(
                    RoomAssignment.assignment_id == assignment_id,
                    RoomAssignment.status.in_(list(expected_statuses)),
                )
                .values(updated_at=datetime.utcnow(), **values)
                .execution_options(synchronize_session=False)
            )
            self._check_rowcount(result, "RoomAssignment", assignment_id)
            self._audit(db, event_type, assignment_id, None, actor_id, payload)

        return self.get_assignment(assignment_id)

    def add_photos(
        self,
        assignment_id: uuid.UUID,
        refs: Sequence[str],
        allowed_statuses: Sequence[str],
        actor_id: uuid.UUID,
    ) -> RoomAssignment:
        with self._transaction("add_photos") as db:
            current = self._locked_assignment(db, assignment_id)
            photos = merge_refs(current.completion_photos, refs)
            result = db.execute(
                update(RoomAssignment)
                .where(
                    RoomAssignment.assignment_id == assignment_id,
                    RoomAssignment.status.in_(list(allowed_statuses)),
                )
                .values(completion_photos=photos, updated_at=datetime.utcnow())
                .execution_options(synchronize_session=False)
            )
            self._check_rowcount(result, "RoomAssignment", assignment_id)
            self._audit(
                db, EventLogService.PHOTOS_ADDED, assignment_id, current.room_id, actor_id,
                {"added": list(refs), "total": len(photos)},
            )

        return self.get_assignment(assignment_id)

    def append_note(self, assignment_id: uuid.UUID, line: str, actor_id: uuid.UUID) -> RoomAssignment:
        with self._transaction("append_note") as db:
            current = self._locked_assignment(db, assignment_id)
            result = db.execute(
                update(RoomAssignment)
                .where(RoomAssignment.assignment_id == assignment_id)
                .values(notes=append_line(current.notes, line), updated_at=datetime.utcnow())
                .execution_options(synchronize_session=False)
            )
            self._check_rowcount(result, "RoomAssignment", assignment_id)
            self._audit(db, EventLogService.NOTE_ADDED, assignment_id, current.room_id, actor_id)

        return self.get_assignment(assignment_id)

    def mark_dnd(
        self,
        assignment_id: uuid.UUID,
        from_statuses: Sequence[str],
        evidence: Sequence[str],
        actor_id: uuid.UUID,
        marked_at: datetime,
    ) -> RoomAssignment:
        """Assignment -> completed/DND and room DND mirror, in one transaction."""
        with self._transaction("mark_dnd") as db:
            current = self._locked_assignment(db, assignment_id)
            if current.status not in from_statuses:
                raise ConcurrentModificationError("RoomAssignment", assignment_id)

            result = db.execute(
                update(RoomAssignment)
                .where(
                    RoomAssignment.assignment_id == assignment_id,
                    RoomAssignment.status.in_(list(from_statuses)),
                )
                .values(
                    status=AssignmentStatus.COMPLETED,
                    completed_at=marked_at,
                    is_dnd=True,
                    dnd_marked_at=marked_at,
                    dnd_marked_by=actor_id,
                    completion_photos=merge_refs(current.completion_photos, evidence),
                    dnd_photos=merge_refs(current.dnd_photos, evidence),
                    updated_at=marked_at,
                )
                .execution_options(synchronize_session=False)
            )
            self._check_rowcount(result, "RoomAssignment", assignment_id)

            result = db.execute(
                update(Room)
                .where(Room.room_id == current.room_id)
                .values(
                    is_dnd=True,
                    dnd_marked_at=marked_at,
                    dnd_marked_by=actor_id,
                    updated_at=marked_at,
                )
                .execution_options(synchronize_session=False)
            )
            self._check_rowcount(result, "Room", current.room_id)

            self._audit(
                db, EventLogService.DND_MARKED, assignment_id, current.room_id, actor_id,
                {"from": current.status, "to": AssignmentStatus.COMPLETED, "evidence": list(evidence)},
            )

        return self.get_assignment(assignment_id)

    def retrieve_dnd(
        self,
        assignment_id: uuid.UUID,
        actor_id: uuid.UUID,
        retrieved_at: datetime,
        room_status: str,
        revoked_approval_note: str,
    ) -> Tuple[RoomAssignment, bool]:
        """
        Reverse a DND mark on both records in one transaction.

        Both UPDATEs are conditional: the assignment must still be a
        completed DND mark and the room must still be flagged DND.
        Returns the refreshed assignment and whether a supervisor approval
        was revoked (the note is appended only in that case).
        """
        with self._transaction("retrieve_dnd") as db:
            current = self._locked_assignment(db, assignment_id)
            if current.status != AssignmentStatus.COMPLETED or not current.is_dnd:
                raise ConcurrentModificationError("RoomAssignment", assignment_id)

            result = db.execute(
                update(Room)
                .where(Room.room_id == current.room_id, Room.is_dnd.is_(True))
                .values(
                    is_dnd=False,
                    dnd_marked_at=None,
                    dnd_marked_by=None,
                    status=room_status,
                    updated_at=retrieved_at,
                )
                .execution_options(synchronize_session=False)
            )
            self._check_rowcount(result, "Room", current.room_id)

            was_approved = bool(current.supervisor_approved)
            dnd_refs = set(current.dnd_photos or [])
            values = dict(
                status=AssignmentStatus.ASSIGNED,
                is_dnd=False,
                dnd_marked_at=None,
                dnd_marked_by=None,
                completed_at=None,
                supervisor_approved=None,
                supervisor_approved_by=None,
                supervisor_approved_at=None,
                completion_photos=[p for p in (current.completion_photos or []) if p not in dnd_refs],
                dnd_photos=[],
                updated_at=retrieved_at,
            )
            if was_approved:
                values["notes"] = append_line(current.notes, revoked_approval_note)

            result = db.execute(
                update(RoomAssignment)
                .where(
                    RoomAssignment.assignment_id == assignment_id,
                    RoomAssignment.status == AssignmentStatus.COMPLETED,
                    RoomAssignment.is_dnd.is_(True),
                )
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            self._check_rowcount(result, "RoomAssignment", assignment_id)

            self._audit(
                db, EventLogService.DND_RETRIEVED, assignment_id, current.room_id, actor_id,
                {"from": current.status, "to": AssignmentStatus.ASSIGNED, "approval_revoked": was_approved},
            )

        return self.get_assignment(assignment_id), was_approved

    def review(
        self,
        assignment_id: uuid.UUID,
        approved: bool,
        reviewer_id: uuid.UUID,
        reviewed_at: datetime,
        note_line: Optional[str],
        clean_status: str,
    ) -> RoomAssignment:
        """Record supervisor sign-off; approving a non-DND completion also marks the room clean."""
        with self._transaction("review") as db:
            current = self._locked_assignment(db, assignment_id)

            values = dict(
                supervisor_approved=approved,
                supervisor_approved_by=reviewer_id,
                supervisor_approved_at=reviewed_at,
                updated_at=reviewed_at,
            )
            if note_line:
                values["notes"] = append_line(current.notes, note_line)

            result = db.execute(
                update(RoomAssignment)
                .where(
                    RoomAssignment.assignment_id == assignment_id,
                    RoomAssignment.status == AssignmentStatus.COMPLETED,
                )
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            self._check_rowcount(result, "RoomAssignment", assignment_id)

            if approved and not current.is_dnd:
                result = db.execute(
                    update(Room)
                    .where(Room.room_id == current.room_id)
                    .values(
                        status=clean_status,
                        last_cleaned_at=current.completed_at or reviewed_at,
                        last_cleaned_by=current.assigned_to,
                        updated_at=reviewed_at,
                    )
                    .execution_options(synchronize_session=False)
                )
                self._check_rowcount(result, "Room", current.room_id)

            self._audit(
                db, EventLogService.REVIEWED, assignment_id, current.room_id, reviewer_id,
                {"approved": approved},
            )

        return self.get_assignment(assignment_id)

    def cancel_assignment(
        self,
        assignment_id: uuid.UUID,
        expected_statuses: Sequence[str],
        actor_id: uuid.UUID,
        cancelled_at: datetime,
    ) -> RoomAssignment:
        """Administrative cancel. A DND mark is cleared on both records."""
        with self._transaction("cancel_assignment") as db:
            current = self._locked_assignment(db, assignment_id)

            values = dict(status=AssignmentStatus.CANCELLED, updated_at=cancelled_at)
            if current.is_dnd:
                values.update(is_dnd=False, dnd_marked_at=None, dnd_marked_by=None)

            result = db.execute(
                update(RoomAssignment)
                .where(
                    RoomAssignment.assignment_id == assignment_id,
                    RoomAssignment.status.in_(list(expected_statuses)),
                )
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            self._check_rowcount(result, "RoomAssignment", assignment_id)

            if current.is_dnd:
                db.execute(
                    update(Room)
                    .where(Room.room_id == current.room_id)
                    .values(is_dnd=False, dnd_marked_at=None, dnd_marked_by=None, updated_at=cancelled_at)
                    .execution_options(synchronize_session=False)
                )

            self._audit(
                db, EventLogService.CANCELLED, assignment_id, current.room_id, actor_id,
                {"from": current.status, "to": AssignmentStatus.CANCELLED, "cleared_dnd": bool(current.is_dnd)},
            )

        return self.get_assignment(assignment_id)
