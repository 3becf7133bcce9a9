"""
Domain records - what the stores persist and the services reason about.

These are plain dataclasses so the state machine and access guards can be
exercised without a database. API shapes live in siwes_portal.schemas.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================
# ENUMS
# ============================================================

class Role(str, Enum):
    STUDENT = "Student"
    SCHOOL_SUPERVISOR = "SchoolSupervisor"
    INDUSTRY_SUPERVISOR = "IndustrySupervisor"
    ADMIN = "Admin"


SUPERVISOR_ROLES = (Role.SCHOOL_SUPERVISOR, Role.INDUSTRY_SUPERVISOR)
ALL_ROLES = tuple(Role)


class ReviewStatus(str, Enum):
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class NotificationType(str, Enum):
    INFO = "INFO"
    SUCCESS = "SUCCESS"
    WARNING = "WARNING"
    ERROR = "ERROR"


class EntryState(str, Enum):
    DRAFT = "Draft"
    SUBMITTED = "Submitted"
    REVIEWED = "Reviewed"


# ============================================================
# RECORDS
# ============================================================

@dataclass
class User:
    email: str
    name: str
    role: Role
    password_hash: str = ""
    is_active: bool = True
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class Student:
    """One-to-one with a Student user; shares the user's id."""
    id: str
    department: Optional[str] = None
    matric_number: Optional[str] = None
    industry_supervisor_id: Optional[str] = None
    school_supervisor_id: Optional[str] = None

    def supervisor_ids(self) -> list:
        return [s for s in (self.industry_supervisor_id, self.school_supervisor_id) if s]


@dataclass
class LogbookEntry:
    student_id: str
    date: date
    description: str
    image_url: Optional[str] = None
    submitted: bool = False
    review_status: Optional[ReviewStatus] = None
    review_comments: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def state(self) -> EntryState:
        if self.review_status is not None:
            return EntryState.REVIEWED
        if self.submitted:
            return EntryState.SUBMITTED
        return EntryState.DRAFT


@dataclass
class AttendanceRecord:
    student_id: str
    supervisor_id: str
    date: date
    present: bool
    notes: Optional[str] = None
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class Notification:
    user_id: str
    title: str
    message: str
    type: NotificationType = NotificationType.INFO
    is_read: bool = False
    is_system_generated: bool = True
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)
