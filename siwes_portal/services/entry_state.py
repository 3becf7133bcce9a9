"""
Logbook entry state machine.

    Draft ──submit──> Submitted ──review──> Reviewed
      │
      └─ edit (only while Draft and no attendance marked for the date)

There is no way back: no unsubmit, no re-review, no delete. Each guard
below raises the error for an illegal transition and returns nothing
otherwise. They only look at the records they are handed, so they are
pure and make no store calls.
"""

from typing import Optional

from siwes_portal.core.exceptions import ConflictError, ForbiddenError, NotFoundError
from siwes_portal.models import EntryState, LogbookEntry, Student


def ensure_owned(entry: Optional[LogbookEntry], student_id: str) -> LogbookEntry:
    """An entry addressed through another student's path is treated as absent."""
    if entry is None or entry.student_id != student_id:
        raise NotFoundError("Logbook entry not found", code="ENTRY_NOT_FOUND")
    return entry


def ensure_editable(entry: LogbookEntry, attendance_marked: bool) -> None:
    state = entry.state
    if state == EntryState.REVIEWED:
        raise ConflictError("Cannot edit a logbook entry that has been reviewed", code="ENTRY_REVIEWED")
    if state == EntryState.SUBMITTED:
        raise ConflictError("Cannot edit a submitted entry", code="ENTRY_SUBMITTED")
    if attendance_marked:
        raise ConflictError(
            "Cannot edit logbook entry after attendance has been marked for this date.",
            code="ATTENDANCE_MARKED",
        )


def ensure_submittable(entry: LogbookEntry) -> None:
    if entry.state != EntryState.DRAFT:
        raise ConflictError("Entry already submitted", code="ALREADY_SUBMITTED")


def ensure_reviewable(entry: LogbookEntry, student: Optional[Student], reviewer_id: str) -> None:
    """Only the student's assigned industry supervisor may review, and only once."""
    if student is None or student.industry_supervisor_id != reviewer_id:
        raise ForbiddenError("Not authorized to review this logbook entry", code="NOT_ASSIGNED_SUPERVISOR")
    state = entry.state
    if state == EntryState.DRAFT:
        raise ConflictError("Cannot review an unsubmitted logbook entry", code="NOT_SUBMITTED")
    if state == EntryState.REVIEWED:
        raise ConflictError("This logbook entry has already been reviewed", code="ALREADY_REVIEWED")
