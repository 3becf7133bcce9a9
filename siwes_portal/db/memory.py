"""
In-memory Store.

Dict-backed implementation of the persistence port, used by the test suite
and by STORAGE_BACKEND=memory for local demos. One lock serialises every
write so conditional updates behave like the SQL store's guarded UPDATEs.
Records are copied on the way in and out; callers never hold live state.
"""

import threading
from collections import Counter
from dataclasses import replace
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from siwes_portal.core.exceptions import DuplicateRecordError
from siwes_portal.db.store import Store
from siwes_portal.models import (
    AttendanceRecord,
    LogbookEntry,
    Notification,
    Role,
    Student,
    User,
    utcnow,
)


def _page(items: list, limit: int, offset: int) -> list:
    return items[offset:offset + limit]


class InMemoryStore(Store):

    def __init__(self):
        self._lock = threading.RLock()
        self.users: Dict[str, User] = {}
        self.students: Dict[str, Student] = {}
        self.entries: Dict[str, LogbookEntry] = {}
        self.attendance: Dict[str, AttendanceRecord] = {}
        self.notifications: Dict[str, Notification] = {}

    # ============================================================
    # USERS & STUDENTS
    # ============================================================

    def create_user(self, user: User, student: Optional[Student] = None) -> User:
        with self._lock:
            email = user.email.lower()
            if any(u.email.lower() == email for u in self.users.values()):
                raise DuplicateRecordError("Email already registered")
            self.users[user.id] = replace(user)
            if student is not None:
                self.students[student.id] = replace(student)
            return replace(user)

    def get_user(self, user_id: str) -> Optional[User]:
        user = self.users.get(user_id)
        return replace(user) if user else None

    def get_user_by_email(self, email: str) -> Optional[User]:
        email = email.lower()
        for user in self.users.values():
            if user.email.lower() == email:
                return replace(user)
        return None

    def get_student(self, student_id: str) -> Optional[Student]:
        student = self.students.get(student_id)
        return replace(student) if student else None

    def update_student_supervisors(self, student_id, industry_supervisor_id, school_supervisor_id):
        with self._lock:
            student = self.students.get(student_id)
            if student is None:
                return None
            student.industry_supervisor_id = industry_supervisor_id
            student.school_supervisor_id = school_supervisor_id
            return replace(student)

    def list_students_for_supervisor(self, supervisor_id: str, role: Optional[Role] = None) -> List[Student]:
        found = []
        for student in self.students.values():
            industry = role != Role.SCHOOL_SUPERVISOR and student.industry_supervisor_id == supervisor_id
            school = role != Role.INDUSTRY_SUPERVISOR and student.school_supervisor_id == supervisor_id
            if industry or school:
                found.append(replace(student))
        return found

    def list_users(self, role=None, is_active=None, search=None, limit=None, offset=0):
        needle = search.lower() if search else None
        users = [
            u for u in self.users.values()
            if (role is None or u.role == role)
            and (is_active is None or u.is_active == is_active)
            and (needle is None or needle in u.name.lower() or needle in u.email.lower())
        ]
        users.reverse()
        users.sort(key=lambda u: u.created_at, reverse=True)
        total = len(users)
        if limit is not None:
            users = _page(users, limit, offset)
        return [replace(u) for u in users], total

    def count_users_by_role(self) -> Dict[Role, int]:
        return dict(Counter(u.role for u in self.users.values()))

    def delete_user(self, user_id: str) -> bool:
        with self._lock:
            if user_id not in self.users:
                return False
            if any(r.supervisor_id == user_id for r in self.attendance.values()):
                raise DuplicateRecordError("User is still referenced by attendance records")
            del self.users[user_id]
            self.students.pop(user_id, None)
            for student in self.students.values():
                if student.industry_supervisor_id == user_id:
                    student.industry_supervisor_id = None
                if student.school_supervisor_id == user_id:
                    student.school_supervisor_id = None
            for entry in list(self.entries.values()):
                if entry.student_id == user_id:
                    del self.entries[entry.id]
                elif entry.reviewed_by == user_id:
                    entry.reviewed_by = None
            for record in list(self.attendance.values()):
                if record.student_id == user_id:
                    del self.attendance[record.id]
            for notification in list(self.notifications.values()):
                if notification.user_id == user_id:
                    del self.notifications[notification.id]
            return True

    # ============================================================
    # LOGBOOK ENTRIES
    # ============================================================

    def create_entry(self, entry: LogbookEntry) -> LogbookEntry:
        with self._lock:
            for existing in self.entries.values():
                if existing.student_id == entry.student_id and existing.date == entry.date:
                    raise DuplicateRecordError("Entry for this date already exists")
            self.entries[entry.id] = replace(entry)
            return replace(entry)

    def get_entry(self, entry_id: str) -> Optional[LogbookEntry]:
        entry = self.entries.get(entry_id)
        return replace(entry) if entry else None

    def update_entry_content(self, entry_id, description, image_url):
        with self._lock:
            entry = self.entries.get(entry_id)
            if entry is None or entry.submitted or entry.review_status is not None:
                return None
            if self._find_attendance(entry.student_id, entry.date):
                return None
            if description is not None:
                entry.description = description
            if image_url is not None:
                entry.image_url = image_url
            entry.updated_at = utcnow()
            return replace(entry)

    def mark_entry_submitted(self, entry_id: str) -> Optional[LogbookEntry]:
        with self._lock:
            entry = self.entries.get(entry_id)
            if entry is None or entry.submitted or entry.review_status is not None:
                return None
            entry.submitted = True
            entry.updated_at = utcnow()
            return replace(entry)

    def record_review(self, entry_id, status, comments, reviewer_id, reviewed_at):
        with self._lock:
            entry = self.entries.get(entry_id)
            if entry is None or not entry.submitted or entry.review_status is not None:
                return None
            entry.review_status = status
            entry.review_comments = comments
            entry.reviewed_by = reviewer_id
            entry.reviewed_at = reviewed_at
            entry.updated_at = utcnow()
            return replace(entry)

    def list_entries(self, student_id, newest_first=False, limit=None):
        entries = sorted(
            (e for e in self.entries.values() if e.student_id == student_id),
            key=lambda e: e.date,
            reverse=newest_first,
        )
        if limit is not None:
            entries = entries[:limit]
        return [replace(e) for e in entries]

    def list_pending_entries(self, student_ids: Iterable[str], limit: int, offset: int) -> Tuple[List[LogbookEntry], int]:
        ids = set(student_ids)
        pending = sorted(
            (e for e in self.entries.values()
             if e.student_id in ids and e.submitted and e.review_status is None),
            key=lambda e: e.created_at,
        )
        return [replace(e) for e in _page(pending, limit, offset)], len(pending)

    def list_reviewed_entries(self, reviewer_id, status, limit, offset):
        reviewed = [
            e for e in self.entries.values()
            if e.reviewed_by == reviewer_id and e.review_status is not None
            and (status is None or e.review_status == status)
        ]
        reviewed.sort(key=lambda e: e.reviewed_at.timestamp() if e.reviewed_at else 0.0, reverse=True)
        return [replace(e) for e in _page(reviewed, limit, offset)], len(reviewed)

    def count_entries(self, student_ids=None, submitted=None, reviewed=None, reviewed_by=None, review_status=None) -> int:
        ids = set(student_ids) if student_ids is not None else None
        count = 0
        for e in self.entries.values():
            if ids is not None and e.student_id not in ids:
                continue
            if submitted is not None and e.submitted != submitted:
                continue
            if reviewed is not None and (e.review_status is not None) != reviewed:
                continue
            if reviewed_by is not None and e.reviewed_by != reviewed_by:
                continue
            if review_status is not None and e.review_status != review_status:
                continue
            count += 1
        return count

    # ============================================================
    # ATTENDANCE
    # ============================================================

    def create_attendance(self, record: AttendanceRecord) -> AttendanceRecord:
        with self._lock:
            if self._find_attendance(record.student_id, record.date):
                raise DuplicateRecordError("Attendance already marked for this date")
            self.attendance[record.id] = replace(record)
            return replace(record)

    def _find_attendance(self, student_id: str, day: date) -> Optional[AttendanceRecord]:
        for record in self.attendance.values():
            if record.student_id == student_id and record.date == day:
                return record
        return None

    def get_attendance(self, student_id: str, day: date) -> Optional[AttendanceRecord]:
        record = self._find_attendance(student_id, day)
        return replace(record) if record else None

    def list_attendance(self, student_id, start=None, end=None, limit=None):
        records = [
            r for r in self.attendance.values()
            if r.student_id == student_id
            and (start is None or r.date >= start)
            and (end is None or r.date <= end)
        ]
        records.sort(key=lambda r: r.date, reverse=True)
        if limit is not None:
            records = records[:limit]
        return [replace(r) for r in records]

    # ============================================================
    # NOTIFICATIONS
    # ============================================================

    def create_notification(self, notification: Notification) -> Notification:
        with self._lock:
            self.notifications[notification.id] = replace(notification)
            return replace(notification)

    def get_notification(self, notification_id: str) -> Optional[Notification]:
        notification = self.notifications.get(notification_id)
        return replace(notification) if notification else None

    def delete_notification(self, notification_id: str) -> bool:
        with self._lock:
            return self.notifications.pop(notification_id, None) is not None

    def list_notifications(self, user_id, unread_only, limit, offset):
        items = [
            n for n in self.notifications.values()
            if n.user_id == user_id and (not unread_only or not n.is_read)
        ]
        items.reverse()
        items.sort(key=lambda n: n.created_at, reverse=True)
        return [replace(n) for n in _page(items, limit, offset)], len(items)

    def count_unread_notifications(self, user_id: str) -> int:
        return sum(1 for n in self.notifications.values() if n.user_id == user_id and not n.is_read)

    def mark_notification_read(self, notification_id, user_id):
        with self._lock:
            notification = self.notifications.get(notification_id)
            if notification is None or notification.user_id != user_id:
                return None
            notification.is_read = True
            return replace(notification)

    def mark_all_notifications_read(self, user_id: str) -> int:
        with self._lock:
            updated = 0
            for n in self.notifications.values():
                if n.user_id == user_id and not n.is_read:
                    n.is_read = True
                    updated += 1
            return updated

    def ping(self) -> bool:
        return True
