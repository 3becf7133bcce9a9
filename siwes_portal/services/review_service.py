"""
Review Service

Industry-supervisor side of the logbook: the one-time APPROVED/REJECTED
decision on a submitted entry, the pending queue, reviewed history and
review statistics.

Reviewing is not gated by the general student-access policy. The reviewer
must be exactly the student's assigned industry supervisor.
"""

import logging
from typing import List, Optional, Tuple

from siwes_portal.core.exceptions import ConflictError, NotFoundError
from siwes_portal.db.store import Store
from siwes_portal.models import LogbookEntry, ReviewStatus, Role, utcnow
from siwes_portal.services import notification_service
from siwes_portal.services.entry_state import ensure_reviewable
from siwes_portal.services.notification_service import TransitionResult

logger = logging.getLogger(__name__)


class ReviewService:

    def __init__(self, store: Store):
        self.store = store

    def review_entry(self, entry_id: str, reviewer_id: str, status: ReviewStatus,
                     comments: Optional[str] = None) -> TransitionResult:
        entry = self.store.get_entry(entry_id)
        if entry is None:
            raise NotFoundError("Logbook entry not found", code="ENTRY_NOT_FOUND")

        student = self.store.get_student(entry.student_id)
        ensure_reviewable(entry, student, reviewer_id)

        reviewed = self.store.record_review(entry_id, status, comments, reviewer_id, utcnow())
        if reviewed is None:
            current = self.store.get_entry(entry_id)
            if current is not None:
                ensure_reviewable(current, student, reviewer_id)
            raise ConflictError("Logbook entry was modified by another request", code="CONFLICT")

        logger.info(
            f"Logbook entry {entry_id} {status.value} by supervisor {reviewer_id} "
            f"for student {entry.student_id}"
        )
        notice = notification_service.logbook_reviewed(
            entry.student_id, entry.date.isoformat(), status.value, comments
        )
        return TransitionResult(reviewed, [notice])

    def _assigned_student_ids(self, supervisor_id: str) -> List[str]:
        return [s.id for s in self.store.list_students_for_supervisor(supervisor_id, role=Role.INDUSTRY_SUPERVISOR)]

    def pending_reviews(self, supervisor_id: str, limit: int, offset: int) -> Tuple[List[LogbookEntry], int]:
        """Submitted, unreviewed entries of the supervisor's students, oldest first."""
        return self.store.list_pending_entries(self._assigned_student_ids(supervisor_id), limit, offset)

    def reviewed_entries(self, reviewer_id: str, status: Optional[ReviewStatus],
                         limit: int, offset: int) -> Tuple[List[LogbookEntry], int]:
        return self.store.list_reviewed_entries(reviewer_id, status, limit, offset)

    def stats(self, supervisor_id: str) -> dict:
        student_ids = self._assigned_student_ids(supervisor_id)
        total_submitted = self.store.count_entries(student_ids=student_ids, submitted=True)
        pending = self.store.count_entries(student_ids=student_ids, submitted=True, reviewed=False)
        approved = self.store.count_entries(reviewed_by=supervisor_id, review_status=ReviewStatus.APPROVED)
        rejected = self.store.count_entries(reviewed_by=supervisor_id, review_status=ReviewStatus.REJECTED)

        total_reviewed = approved + rejected
        progress = (total_reviewed / total_submitted) * 100 if total_submitted > 0 else 0.0
        return {
            "total_submitted": total_submitted,
            "pending_reviews": pending,
            "approved_entries": approved,
            "rejected_entries": rejected,
            "total_reviewed": total_reviewed,
            "review_progress": round(progress, 2),
        }
