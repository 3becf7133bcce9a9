"""
Logbook Service

Student-side lifecycle of a logbook entry: create, edit, submit, plus the
read views the student dashboard uses. Access has already been checked by
the route guards; this layer enforces the entry state machine against the
store, which arbitrates concurrent writes.
"""

import logging
from datetime import date
from typing import Callable, List, Optional, Tuple

from siwes_portal.core.exceptions import ConflictError, DuplicateRecordError, ValidationError
from siwes_portal.db.store import Store
from siwes_portal.models import LogbookEntry, User
from siwes_portal.services import notification_service
from siwes_portal.services.entry_state import ensure_editable, ensure_owned, ensure_submittable
from siwes_portal.services.notification_service import TransitionResult

logger = logging.getLogger(__name__)

RECENT_ENTRIES_LIMIT = 5


class LogbookService:

    def __init__(self, store: Store):
        self.store = store

    # ============================================================
    # TRANSITIONS
    # ============================================================

    def create_entry(self, student_id: str, day: date, description: str,
                     image_url: Optional[str] = None) -> TransitionResult:
        """New entry in Draft. One entry per student per day."""
        try:
            entry = self.store.create_entry(LogbookEntry(
                student_id=student_id,
                date=day,
                description=description,
                image_url=image_url,
            ))
        except DuplicateRecordError:
            raise ConflictError("Entry for this date already exists", code="DUPLICATE_ENTRY_DATE")

        logger.info(f"Logbook entry {entry.id} created for student {student_id} on {day}")
        return TransitionResult(entry)

    def edit_entry(self, student_id: str, entry_id: str, description: Optional[str],
                   image_url: Optional[str]) -> TransitionResult:
        """Change description and/or image of a draft; the date never changes."""
        if description is None and image_url is None:
            raise ValidationError("No fields to update")

        entry = ensure_owned(self.store.get_entry(entry_id), student_id)
        ensure_editable(entry, self._attendance_marked(entry))

        updated = self.store.update_entry_content(entry_id, description, image_url)
        if updated is None:
            self._lost_race(entry_id, lambda e: ensure_editable(e, self._attendance_marked(e)))

        logger.info(f"Logbook entry {entry_id} edited by student {student_id}")
        return TransitionResult(updated)

    def submit_entry(self, student_id: str, entry_id: str) -> TransitionResult:
        """Freeze a draft for review and tell the student and their supervisors."""
        entry = ensure_owned(self.store.get_entry(entry_id), student_id)
        ensure_submittable(entry)

        updated = self.store.mark_entry_submitted(entry_id)
        if updated is None:
            self._lost_race(entry_id, ensure_submittable)

        student = self.store.get_student(student_id)
        user = self.store.get_user(student_id)
        pending = notification_service.logbook_submitted(
            student_id,
            user.name if user else "A student",
            updated.date.isoformat(),
            student.supervisor_ids() if student else [],
        )
        logger.info(f"Logbook entry {entry_id} submitted by student {student_id}")
        return TransitionResult(updated, pending)

    def _attendance_marked(self, entry: LogbookEntry) -> bool:
        return self.store.get_attendance(entry.student_id, entry.date) is not None

    def _lost_race(self, entry_id: str, check: Callable[[LogbookEntry], None]) -> None:
        """A guarded write matched nothing: report what the winner left behind."""
        current = self.store.get_entry(entry_id)
        if current is not None:
            check(current)
        raise ConflictError("Logbook entry was modified by another request", code="CONFLICT")

    # ============================================================
    # READS
    # ============================================================

    def get_entry(self, student_id: str, entry_id: str) -> LogbookEntry:
        return ensure_owned(self.store.get_entry(entry_id), student_id)

    def list_entries(self, student_id: str) -> List[LogbookEntry]:
        """Oldest day first."""
        return self.store.list_entries(student_id)

    def recent_entries(self, student_id: str, limit: int = RECENT_ENTRIES_LIMIT) -> List[LogbookEntry]:
        return self.store.list_entries(student_id, newest_first=True, limit=limit)

    def entries_with_reviews(self, student_id: str) -> List[Tuple[LogbookEntry, Optional[User]]]:
        """Newest day first, each paired with its reviewer (None while unreviewed)."""
        reviewers = {}
        result = []
        for entry in self.store.list_entries(student_id, newest_first=True):
            reviewer = None
            if entry.reviewed_by:
                if entry.reviewed_by not in reviewers:
                    reviewers[entry.reviewed_by] = self.store.get_user(entry.reviewed_by)
                reviewer = reviewers[entry.reviewed_by]
            result.append((entry, reviewer))
        return result

    def analytics(self, student_id: str) -> dict:
        total_entries = self.store.count_entries(student_ids=[student_id])
        total_submitted = self.store.count_entries(student_ids=[student_id], submitted=True)
        attendance = self.store.list_attendance(student_id)
        present = sum(1 for record in attendance if record.present)

        return {
            "total_entries": total_entries,
            "total_submitted": total_submitted,
            "total_pending": total_entries - total_submitted,
            "total_attendance": len(attendance),
            # entries are unique per (student, date), so this is the number of logged days
            "total_days": total_entries,
            "attendance_percentage": (present / len(attendance)) * 100 if attendance else 0.0,
        }
