"""
Persistence port.

Services and guards talk to this interface only; SqlStore backs it with
PostgreSQL, InMemoryStore with dicts. Both must give identical answers.

Conditional writes (update_entry_content, mark_entry_submitted,
record_review) only apply when the stored entry is still in the state the
transition requires; content edits also need the entry's date to be free of
attendance. They return None otherwise, so a caller racing another request
observes the post-transition state instead of overwriting it.


Failures of the underlying database surface as StoreError; uniqueness
violations as DuplicateRecordError.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Tuple

from siwes_portal.models import (
    AttendanceRecord,
    LogbookEntry,
    Notification,
    ReviewStatus,
    Role,
    Student,
    User,
)


class Store(ABC):

    # ------------------------------------------------------------------
    # Users & students
    # ------------------------------------------------------------------

    @abstractmethod
    def create_user(self, user: User, student: Optional[Student] = None) -> User:
        """Insert a user (and its Student row when given) atomically."""

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[User]:
        ...

    @abstractmethod
    def get_user_by_email(self, email: str) -> Optional[User]:
        ...

    @abstractmethod
    def get_student(self, student_id: str) -> Optional[Student]:
        ...

    @abstractmethod
    def update_student_supervisors(
        self,
        student_id: str,
        industry_supervisor_id: Optional[str],
        school_supervisor_id: Optional[str],
    ) -> Optional[Student]:
        ...

    @abstractmethod
    def list_students_for_supervisor(self, supervisor_id: str, role: Optional[Role] = None) -> List[Student]:
        """
        Students assigned to supervisor_id. role narrows the match to the
        industry or school supervisor slot; None matches either.
        """

    @abstractmethod
    def list_users(
        self,
        role: Optional[Role] = None,
        is_active: Optional[bool] = None,
        search: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> Tuple[List[User], int]:
        """Newest first; search matches name or email case-insensitively. Returns the page and the total."""

    @abstractmethod
    def count_users_by_role(self) -> Dict[Role, int]:
        ...

    @abstractmethod
    def delete_user(self, user_id: str) -> bool:
        """Remove the user with its Student row and notifications. False when absent."""

    # ------------------------------------------------------------------
    # Logbook entries
    # ------------------------------------------------------------------

    @abstractmethod
    def create_entry(self, entry: LogbookEntry) -> LogbookEntry:
        """Raises DuplicateRecordError when (student_id, date) is taken."""

    @abstractmethod
    def get_entry(self, entry_id: str) -> Optional[LogbookEntry]:
        ...

    @abstractmethod
    def update_entry_content(
        self, entry_id: str, description: Optional[str], image_url: Optional[str]
    ) -> Optional[LogbookEntry]:
        """Apply non-None fields if the entry is still a draft and its date has no attendance."""

    @abstractmethod
    def mark_entry_submitted(self, entry_id: str) -> Optional[LogbookEntry]:
        """Set submitted if the entry is still a draft."""

    @abstractmethod
    def record_review(
        self,
        entry_id: str,
        status: ReviewStatus,
        comments: Optional[str],
        reviewer_id: str,
        reviewed_at: datetime,
    ) -> Optional[LogbookEntry]:
        """Store the review if the entry is submitted and not yet reviewed."""

    @abstractmethod
    def list_entries(
        self, student_id: str, newest_first: bool = False, limit: Optional[int] = None
    ) -> List[LogbookEntry]:
        """A student's entries ordered by date."""

    @abstractmethod
    def list_pending_entries(
        self, student_ids: Iterable[str], limit: int, offset: int
    ) -> Tuple[List[LogbookEntry], int]:
        """Submitted, unreviewed entries oldest-created first, plus the total."""

    @abstractmethod
    def list_reviewed_entries(
        self, reviewer_id: str, status: Optional[ReviewStatus], limit: int, offset: int
    ) -> Tuple[List[LogbookEntry], int]:
        """Entries reviewed by reviewer_id, most recently reviewed first, plus the total."""

    @abstractmethod
    def count_entries(
        self,
        student_ids: Optional[Iterable[str]] = None,
        submitted: Optional[bool] = None,
        reviewed: Optional[bool] = None,
        reviewed_by: Optional[str] = None,
        review_status: Optional[ReviewStatus] = None,
    ) -> int:
        """Count entries matching every filter that is not None."""

    # ------------------------------------------------------------------
    # Attendance
    # ------------------------------------------------------------------

    @abstractmethod
    def create_attendance(self, record: AttendanceRecord) -> AttendanceRecord:
        """Raises DuplicateRecordError when (student_id, date) is taken."""

    @abstractmethod
    def get_attendance(self, student_id: str, day: date) -> Optional[AttendanceRecord]:
        ...

    @abstractmethod
    def list_attendance(
        self,
        student_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
        limit: Optional[int] = None,
    ) -> List[AttendanceRecord]:
        """Newest first, optionally bounded to [start, end]."""

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    @abstractmethod
    def create_notification(self, notification: Notification) -> Notification:
        ...

    @abstractmethod
    def get_notification(self, notification_id: str) -> Optional[Notification]:
        ...

    @abstractmethod
    def delete_notification(self, notification_id: str) -> bool:
        ...

    @abstractmethod
    def list_notifications(
        self, user_id: str, unread_only: bool, limit: int, offset: int
    ) -> Tuple[List[Notification], int]:
        """Newest first, plus the total."""

    @abstractmethod
    def count_unread_notifications(self, user_id: str) -> int:
        ...

    @abstractmethod
    def mark_notification_read(self, notification_id: str, user_id: str) -> Optional[Notification]:
        ...

    @abstractmethod
    def mark_all_notifications_read(self, user_id: str) -> int:
        ...

    # ------------------------------------------------------------------

    @abstractmethod
    def ping(self) -> bool:
        """True when the backing store is reachable."""
