"""
Attendance Service

Industry supervisors mark a student present or absent for a day. A marked
day also freezes that day's logbook entry against edits (see entry_state).
"""

import calendar
import logging
from datetime import date, datetime
from typing import List, Optional, Tuple

from siwes_portal.core.exceptions import (
    ConflictError,
    DuplicateRecordError,
    ForbiddenError,
    ValidationError,
)
from siwes_portal.db.store import Store
from siwes_portal.models import AttendanceRecord
from siwes_portal.services import notification_service
from siwes_portal.services.notification_service import TransitionResult

logger = logging.getLogger(__name__)


def month_bounds(month: str) -> Tuple[date, date]:
    """'2024-01' -> (2024-01-01, 2024-01-31)"""
    try:
        start = datetime.strptime(month, "%Y-%m").date()
    except ValueError:
        raise ValidationError("month must be formatted as YYYY-MM", details={"field": "month"})
    last_day = calendar.monthrange(start.year, start.month)[1]
    return start, start.replace(day=last_day)


class AttendanceService:

    def __init__(self, store: Store):
        self.store = store

    def mark_attendance(self, supervisor_id: str, student_id: str, day: date, present: bool,
                        notes: Optional[str] = None) -> TransitionResult:
        student = self.store.get_student(student_id)
        if student is None or student.industry_supervisor_id != supervisor_id:
            raise ForbiddenError(
                "Not authorized to mark attendance for this student", code="NOT_ASSIGNED_SUPERVISOR"
            )

        try:
            record = self.store.create_attendance(AttendanceRecord(
                student_id=student_id,
                supervisor_id=supervisor_id,
                date=day,
                present=present,
                notes=notes,
            ))
        except DuplicateRecordError:
            raise ConflictError("Attendance already marked for this date", code="DUPLICATE_ATTENDANCE")

        logger.info(f"Attendance marked for student {student_id} on {day}: {'Present' if present else 'Absent'}")
        notice = notification_service.attendance_marked(student_id, day.isoformat(), present)
        return TransitionResult(record, [notice])

    def history(self, student_id: str, month: Optional[str] = None,
                limit: int = 50) -> Tuple[List[AttendanceRecord], dict]:
        """Newest first, with present/absent statistics over the returned records."""
        start, end = month_bounds(month) if month else (None, None)
        records = self.store.list_attendance(student_id, start=start, end=end, limit=limit)

        total = len(records)
        present = sum(1 for r in records if r.present)
        rate = (present / total) * 100 if total > 0 else 0.0
        return records, {
            "total_days": total,
            "present_days": present,
            "absent_days": total - present,
            "attendance_rate": round(rate, 2),
        }
