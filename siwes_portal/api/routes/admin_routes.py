"""
Admin Routes

GET /admin/students/{student_id} - Student record with assigned supervisors
PUT /admin/students/{student_id}/supervisors - Assign or unassign supervisors
POST /admin/notifications - Send a notification to all users, a role, or one user
DELETE /admin/notifications/{notification_id} - Delete an admin-sent notification
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends

from siwes_portal.core.auth import require_role
from siwes_portal.core.exceptions import NotFoundError, ValidationError
from siwes_portal.db import Store, get_store
from siwes_portal.models import Notification, Role
from siwes_portal.schemas.schemas import (
    AdminNotificationCreate,
    BroadcastResponse,
    MessageResponse,
    RecipientType,
    StudentResponse,
    SupervisorAssignment,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])

admin_only = require_role(Role.ADMIN)


def _check_supervisor(store: Store, user_id: Optional[str], role: Role, field: str) -> None:
    if user_id is None:
        return
    user = store.get_user(user_id)
    if user is None or user.role != role:
        raise ValidationError(
            f"{field} must reference a {role.value} account",
            details={"field": field},
        )


@router.get("/students/{student_id}", response_model=StudentResponse)
async def get_student(student_id: str, user: dict = Depends(admin_only), store: Store = Depends(get_store)):
    student = store.get_student(student_id)
    if student is None:
        raise NotFoundError("Student not found", code="STUDENT_NOT_FOUND")
    return StudentResponse.from_record(student, store.get_user(student_id))


@router.put("/students/{student_id}/supervisors", response_model=StudentResponse)
async def assign_supervisors(
    student_id: str,
    body: SupervisorAssignment,
    user: dict = Depends(admin_only),
    store: Store = Depends(get_store),
):
    """Fields left out of the body keep their current value."""
    student = store.get_student(student_id)
    if student is None:
        raise NotFoundError("Student not found", code="STUDENT_NOT_FOUND")

    industry_id = student.industry_supervisor_id
    school_id = student.school_supervisor_id
    if "industry_supervisor_id" in body.model_fields_set:
        _check_supervisor(store, body.industry_supervisor_id, Role.INDUSTRY_SUPERVISOR, "industrySupervisorId")
        industry_id = body.industry_supervisor_id
    if "school_supervisor_id" in body.model_fields_set:
        _check_supervisor(store, body.school_supervisor_id, Role.SCHOOL_SUPERVISOR, "schoolSupervisorId")
        school_id = body.school_supervisor_id

    updated = store.update_student_supervisors(student_id, industry_id, school_id)
    if updated is None:
        raise NotFoundError("Student not found", code="STUDENT_NOT_FOUND")

    logger.info(
        f"Supervisors for student {student_id} set to industry={industry_id} school={school_id} "
        f"by admin {user['user_id']}"
    )
    return StudentResponse.from_record(updated, store.get_user(student_id))


# ============================================================
# NOTIFICATIONS
# ============================================================

def _recipients(store: Store, body: AdminNotificationCreate) -> List[str]:
    if body.recipient_type == RecipientType.INDIVIDUAL:
        if not body.recipient_id:
            raise ValidationError("recipientId is required when recipientType is INDIVIDUAL",
                                  details={"field": "recipientId"})
        recipient = store.get_user(body.recipient_id)
        if recipient is None:
            raise ValidationError("Recipient user not found", details={"field": "recipientId"})
        if not recipient.is_active:
            raise ValidationError("Cannot send notification to inactive user", details={"field": "recipientId"})
        return [recipient.id]

    if body.recipient_type == RecipientType.ROLE and body.recipient_role is None:
        raise ValidationError("recipientRole is required when recipientType is ROLE",
                              details={"field": "recipientRole"})
    role = body.recipient_role if body.recipient_type == RecipientType.ROLE else None
    users, _ = store.list_users(role=role, is_active=True)
    return [u.id for u in users]


@router.post("/notifications", response_model=BroadcastResponse, status_code=201)
async def send_notification(
    body: AdminNotificationCreate,
    user: dict = Depends(admin_only),
    store: Store = Depends(get_store),
):
    """Send to every active user, every active user of a role, or one user."""
    recipients = _recipients(store, body)
    for recipient_id in recipients:
        store.create_notification(Notification(
            user_id=recipient_id,
            title=body.title,
            message=body.message,
            type=body.type,
            is_system_generated=False,
        ))

    logger.info(
        f"Admin {user['user_id']} sent '{body.title}' to {len(recipients)} users "
        f"({body.recipient_type.value})"
    )
    return BroadcastResponse(message="Notification sent successfully", recipient_count=len(recipients))


@router.delete("/notifications/{notification_id}", response_model=MessageResponse)
async def delete_notification(
    notification_id: str,
    user: dict = Depends(admin_only),
    store: Store = Depends(get_store),
):
    """Only admin-sent notifications can be removed."""
    notification = store.get_notification(notification_id)
    if notification is None:
        raise NotFoundError("Notification not found")
    if notification.is_system_generated:
        raise ValidationError("Cannot delete system-generated notifications", code="SYSTEM_NOTIFICATION")

    store.delete_notification(notification_id)
    return MessageResponse(message="Notification deleted successfully")
