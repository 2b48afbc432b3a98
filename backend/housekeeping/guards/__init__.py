"""
Transition guards.

Each guard evaluates one rule against freshly fetched facts:
- AttendanceGate: checked in and not on break
- ConcurrencyGuard: one active room per worker per day
- PhotoRequirementPolicy: proof-of-work photos before completion
"""

from .base import (
    Actor,
    BaseGuard,
    GuardContext,
    GuardResult,
    RejectionReason,
    render_message,
)
from .attendance_gate import AttendanceGate
from .concurrency_guard import ConcurrencyGuard
from .photo_policy import PhotoRequirementPolicy

__all__ = [
    "Actor",
    "BaseGuard",
    "GuardContext",
    "GuardResult",
    "RejectionReason",
    "render_message",
    "AttendanceGate",
    "ConcurrencyGuard",
    "PhotoRequirementPolicy",
]
