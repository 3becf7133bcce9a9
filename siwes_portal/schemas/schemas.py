"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
JSON uses camelCase (reviewStatus, hasMore, ...); requests may also use
the snake_case field names.
"""

import datetime as dt
from enum import Enum
from typing import Dict, List, Optional

from fastapi import Request
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from siwes_portal.models import (
    AttendanceRecord,
    EntryState,
    LogbookEntry,
    Notification,
    NotificationType,
    ReviewStatus,
    Role,
    Student,
    User,
)
from siwes_portal.utils.file_upload import absolute_url


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================
# AUTH SCHEMAS
# ============================================================

class RegisterRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    name: str = Field(..., min_length=2, max_length=100)
    role: Role = Role.STUDENT
    department: Optional[str] = None
    matric_number: Optional[str] = None

class LoginRequest(CamelModel):
    email: EmailStr
    password: str

class TokenResponse(CamelModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str
    role: Role

class SignupRequest(CamelModel):
    """First-admin bootstrap; only accepted while no account exists."""
    email: EmailStr
    password: str = Field(..., min_length=8)
    name: str = Field(..., min_length=2, max_length=100)

class UserResponse(CamelModel):
    id: str
    email: str
    name: str
    role: Role
    is_active: bool
    created_at: dt.datetime

    @classmethod
    def from_record(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id, email=user.email, name=user.name, role=user.role,
            is_active=user.is_active, created_at=user.created_at,
        )


class SignupResponse(CamelModel):
    user: UserResponse


# ============================================================
# STUDENT / SUPERVISOR ASSIGNMENT SCHEMAS
# ============================================================

class StudentResponse(CamelModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    department: Optional[str] = None
    matric_number: Optional[str] = None
    industry_supervisor_id: Optional[str] = None
    school_supervisor_id: Optional[str] = None

    @classmethod
    def from_record(cls, student: Student, user: Optional[User] = None) -> "StudentResponse":
        return cls(
            id=student.id,
            name=user.name if user else None,
            email=user.email if user else None,
            department=student.department,
            matric_number=student.matric_number,
            industry_supervisor_id=student.industry_supervisor_id,
            school_supervisor_id=student.school_supervisor_id,
        )

class SupervisorAssignment(CamelModel):
    """Omitted fields stay as they are; an explicit null unassigns."""
    industry_supervisor_id: Optional[str] = None
    school_supervisor_id: Optional[str] = None

class StudentListResponse(CamelModel):
    students: List[StudentResponse]
    total: int


# ============================================================
# LOGBOOK SCHEMAS
# ============================================================

class LogbookEntryResponse(CamelModel):
    id: str
    student_id: str
    date: dt.date
    description: str
    image_url: Optional[str] = None
    submitted: bool
    state: EntryState
    review_status: Optional[ReviewStatus] = None
    review_comments: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[dt.datetime] = None
    created_at: dt.datetime
    updated_at: dt.datetime

    @classmethod
    def from_record(cls, entry: LogbookEntry, request: Request, **extra):
        """Build the response, turning the stored relative image path into a full URL."""
        return cls(
            id=entry.id,
            student_id=entry.student_id,
            date=entry.date,
            description=entry.description,
            image_url=absolute_url(request, entry.image_url),
            submitted=entry.submitted,
            state=entry.state,
            review_status=entry.review_status,
            review_comments=entry.review_comments,
            reviewed_by=entry.reviewed_by,
            reviewed_at=entry.reviewed_at,
            created_at=entry.created_at,
            updated_at=entry.updated_at,
            **extra,
        )

class UserSummary(CamelModel):
    id: str
    name: str
    email: str

class EntryWithReviewerResponse(LogbookEntryResponse):
    reviewer: Optional[UserSummary] = None

class StudentInfo(CamelModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    matric_number: Optional[str] = None
    department: Optional[str] = None

class EntryWithStudentResponse(LogbookEntryResponse):
    student: Optional[StudentInfo] = None

class EntryEnvelope(CamelModel):
    entry: LogbookEntryResponse

class EntryListResponse(CamelModel):
    entries: List[LogbookEntryResponse]

class EntryWithReviewsListResponse(CamelModel):
    entries: List[EntryWithReviewerResponse]

class LogbookAnalyticsResponse(CamelModel):
    total_entries: int
    total_submitted: int
    total_pending: int
    total_attendance: int
    total_days: int
    attendance_percentage: float


# ============================================================
# REVIEW SCHEMAS
# ============================================================

class ReviewRequest(CamelModel):
    review_status: ReviewStatus
    review_comments: Optional[str] = Field(None, max_length=2000)

class ReviewResultResponse(CamelModel):
    message: str
    entry: LogbookEntryResponse

class Pagination(CamelModel):
    total: int
    limit: int
    offset: int
    has_more: bool

    @classmethod
    def build(cls, total: int, limit: int, offset: int) -> "Pagination":
        return cls(total=total, limit=limit, offset=offset, has_more=offset + limit < total)

class PaginatedEntriesResponse(CamelModel):
    entries: List[EntryWithStudentResponse]
    pagination: Pagination

class ReviewStatsResponse(CamelModel):
    total_submitted: int
    pending_reviews: int
    approved_entries: int
    rejected_entries: int
    total_reviewed: int
    review_progress: float


# ============================================================
# ATTENDANCE SCHEMAS
# ============================================================

class AttendanceCreate(CamelModel):
    student_id: str = Field(..., min_length=1)
    date: dt.date
    present: bool
    notes: Optional[str] = None

class AttendanceResponse(CamelModel):
    id: str
    student_id: str
    supervisor_id: str
    date: dt.date
    present: bool
    notes: Optional[str] = None
    created_at: dt.datetime

    @classmethod
    def from_record(cls, record: AttendanceRecord) -> "AttendanceResponse":
        return cls(
            id=record.id, student_id=record.student_id, supervisor_id=record.supervisor_id,
            date=record.date, present=record.present, notes=record.notes, created_at=record.created_at,
        )

class AttendanceCreatedResponse(CamelModel):
    message: str
    attendance: AttendanceResponse

class AttendanceStatistics(CamelModel):
    total_days: int
    present_days: int
    absent_days: int
    attendance_rate: float

class AttendanceHistoryResponse(CamelModel):
    attendance: List[AttendanceResponse]
    statistics: AttendanceStatistics


# ============================================================
# NOTIFICATION SCHEMAS
# ============================================================

class NotificationResponse(CamelModel):
    id: str
    title: str
    message: str
    type: NotificationType
    is_read: bool
    is_system_generated: bool
    created_at: dt.datetime

    @classmethod
    def from_record(cls, n: Notification) -> "NotificationResponse":
        return cls(
            id=n.id, title=n.title, message=n.message, type=n.type, is_read=n.is_read,
            is_system_generated=n.is_system_generated, created_at=n.created_at,
        )

class NotificationListResponse(CamelModel):
    notifications: List[NotificationResponse]
    pagination: Pagination
    unread_count: int

class NotificationEnvelope(CamelModel):
    notification: NotificationResponse

class RecipientType(str, Enum):
    ALL = "ALL"
    ROLE = "ROLE"
    INDIVIDUAL = "INDIVIDUAL"

class AdminNotificationCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=1000)
    type: NotificationType = NotificationType.INFO
    recipient_type: RecipientType
    recipient_role: Optional[Role] = None
    recipient_id: Optional[str] = None

class BroadcastResponse(CamelModel):
    message: str
    recipient_count: int


# ============================================================
# INDUSTRY SUPERVISOR SUBMISSION SCHEMAS
# ============================================================

class IndustrySupervisorRow(CamelModel):
    """One row of the uploaded industry supervisor CSV."""
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    company: Optional[str] = None
    position: Optional[str] = None

class IndustrySupervisorResult(CamelModel):
    message: str
    supervisor: UserSummary

class IndustrySupervisorStatus(CamelModel):
    has_industry_supervisor: bool
    supervisor: Optional[UserSummary] = None


# ============================================================
# USER ADMINISTRATION SCHEMAS
# ============================================================

class AdminUserCreate(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    name: str = Field(..., min_length=2, max_length=100)
    role: Role
    department: Optional[str] = None
    matric_number: Optional[str] = None

class UserListResponse(CamelModel):
    users: List[UserResponse]
    pagination: Pagination

class UserStatsResponse(CamelModel):
    total_users: int
    users_by_role: Dict[str, int]

class UserDetailResponse(UserResponse):
    student: Optional[StudentResponse] = None

class DeletedUserResponse(CamelModel):
    message: str
    deleted_user: UserResponse


# ============================================================
# GENERIC SCHEMAS
# ============================================================

class MessageResponse(CamelModel):
    message: str
    success: bool = True

class CountResponse(CamelModel):
    message: str
    updated: int

class ErrorResponse(CamelModel):
    error: str
    code: Optional[str] = None
