"""
WorkQueuePrioritizer: turns a worker's assignments into a display order.

Pure and stable: the same input always yields the same order, equal keys
keep their input order, and sorting a sorted list changes nothing.

Two named views share the machinery and differ only in their key stages:

STANDARD  bucket -> floor -> room number
COMPACT   status rank -> priority (desc) -> checkout ready -> floor -> room number
"""

import re
from enum import Enum, IntEnum
from typing import Any, Callable, Iterable, List, Sequence, Tuple

from housekeeping.models import AssignmentPriority, AssignmentStatus, AssignmentType

# Missing floors sort after every real floor
FLOOR_SENTINEL = 999
ROOM_SENTINEL = 999


class QueueView(str, Enum):
    STANDARD = "standard"
    COMPACT = "compact"


class Bucket(IntEnum):
    IN_PROGRESS = 0
    URGENT = 1
    CHECKOUT_READY = 2
    ROUTINE = 3
    CHECKOUT_WAITING = 4
    COMPLETED = 5
    CANCELLED = 6


COMPACT_STATUS_RANK = {
    AssignmentStatus.IN_PROGRESS: 0,
    AssignmentStatus.ASSIGNED: 1,
    AssignmentStatus.COMPLETED: 2,
    AssignmentStatus.CANCELLED: 3,
}


def _room_field(assignment, name: str):
    room = getattr(assignment, "room", None)
    if room is not None:
        return getattr(room, name, None)
    return getattr(assignment, name, None)


def _is_checkout(assignment) -> bool:
    return assignment.assignment_type == AssignmentType.CHECKOUT_CLEANING


# =============================================================================
# Key stages
# =============================================================================

def bucket_of(assignment) -> Bucket:
    status = assignment.status
    if status == AssignmentStatus.IN_PROGRESS:
        return Bucket.IN_PROGRESS
    if status == AssignmentStatus.COMPLETED:
        return Bucket.COMPLETED
    if status == AssignmentStatus.CANCELLED:
        return Bucket.CANCELLED

    if (assignment.priority or 0) >= AssignmentPriority.HIGH:
        return Bucket.URGENT
    if _is_checkout(assignment):
        return Bucket.CHECKOUT_READY if assignment.ready_to_clean else Bucket.CHECKOUT_WAITING
    return Bucket.ROUTINE


def floor_key(assignment) -> int:
    floor = _room_field(assignment, "floor_number")
    return FLOOR_SENTINEL if floor is None else floor


def room_number_key(assignment) -> Tuple[int, int]:
    """Numeric room numbers ascending; anything else after them, unordered."""
    number = str(_room_field(assignment, "room_number") or "").strip()
    if number.isdigit():
        return (0, int(number))
    return (1, 0)


def room_digits_key(assignment) -> int:
    """Digits of the room number ("12A" -> 12); no digits sorts last."""
    digits = re.sub(r"\D", "", str(_room_field(assignment, "room_number") or ""))
    return int(digits) if digits else ROOM_SENTINEL


def status_rank(assignment) -> int:
    return COMPACT_STATUS_RANK.get(assignment.status, len(COMPACT_STATUS_RANK))


def priority_desc(assignment) -> int:
    return -(assignment.priority or AssignmentPriority.NORMAL)


def checkout_ready_first(assignment) -> int:
    return 0 if _is_checkout(assignment) and assignment.ready_to_clean else 1


KeyStage = Tuple[str, Callable[[Any], Any]]

VIEW_STAGES = {
    QueueView.STANDARD: (
        ("bucket", bucket_of),
        ("floor", floor_key),
        ("room_number", room_number_key),
    ),
    QueueView.COMPACT: (
        ("status", status_rank),
        ("priority", priority_desc),
        ("checkout_ready", checkout_ready_first),
        ("floor", floor_key),
        ("room_number", room_digits_key),
    ),
}


class WorkQueuePrioritizer:
    """Sorts (and for the compact view, filters) a worker's assignments."""

    def __init__(self, view: QueueView = QueueView.STANDARD):
        self.view = QueueView(view)
        self.stages: Sequence[KeyStage] = VIEW_STAGES[self.view]

    @property
    def stage_names(self) -> List[str]:
        return [name for name, _ in self.stages]

    def sort_key(self, assignment) -> tuple:
        return tuple(key(assignment) for _, key in self.stages)

    def sort(self, assignments: Iterable[Any]) -> List[Any]:
        return sorted(assignments, key=self.sort_key)

    def select(self, assignments: Iterable[Any], include_completed: bool = False) -> List[Any]:
        """
        Rows the view shows. The compact view hides checkout rooms whose
        guest has not left and, unless asked, completed work.
        """
        rows = list(assignments)
        if self.view != QueueView.COMPACT:
            return rows

        visible = []
        for assignment in rows:
            if _is_checkout(assignment) and not assignment.ready_to_clean \
                    and assignment.status == AssignmentStatus.ASSIGNED:
                continue
            if assignment.status == AssignmentStatus.COMPLETED and not include_completed:
                continue
            visible.append(assignment)
        return visible

    def build(self, assignments: Iterable[Any], include_completed: bool = False) -> List[Any]:
        return self.sort(self.select(assignments, include_completed))
