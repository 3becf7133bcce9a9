"""
Models module - domain records shared by stores, services and routes.
"""

from siwes_portal.models.records import (
    ALL_ROLES,
    SUPERVISOR_ROLES,
    AttendanceRecord,
    EntryState,
    LogbookEntry,
    Notification,
    NotificationType,
    ReviewStatus,
    Role,
    Student,
    User,
    new_id,
    utcnow,
)

__all__ = [
    "ALL_ROLES",
    "SUPERVISOR_ROLES",
    "AttendanceRecord",
    "EntryState",
    "LogbookEntry",
    "Notification",
    "NotificationType",
    "ReviewStatus",
    "Role",
    "Student",
    "User",
    "new_id",
    "utcnow",
]
