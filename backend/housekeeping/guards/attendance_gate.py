"""
AttendanceGate - may this actor begin work today?

Based on: the latest attendance record for (actor, work_date), ordered by
record creation time. Admin check-ins bypass the gate.
"""

from housekeeping.models.staff import AttendanceStatus

from .base import BaseGuard, GuardContext, GuardResult, RejectionReason


class AttendanceGate(BaseGuard):

    @property
    def name(self) -> str:
        return "AttendanceGate"

    def _evaluate(self, context: GuardContext) -> GuardResult:
        record = context.attendance

        if record is not None and self._is_manual_checkin(record, context.manual_checkin_marker):
            return self.allow()

        if record is None or record.status == AttendanceStatus.CHECKED_OUT:
            return self.deny(RejectionReason.NOT_CHECKED_IN)

        if record.status == AttendanceStatus.ON_BREAK:
            return self.deny(RejectionReason.ON_BREAK)

        if record.status == AttendanceStatus.CHECKED_IN:
            return self.allow()

        # Unknown status values are treated as not checked in
        return self.deny(RejectionReason.NOT_CHECKED_IN, status=record.status)

    @staticmethod
    def _is_manual_checkin(record, marker) -> bool:
        if not marker:
            return False
        return marker in (record.notes or "")
