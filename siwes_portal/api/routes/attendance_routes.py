"""
Attendance Routes

POST /attendance - Mark a student present/absent for a day (assigned industry supervisor)
GET  /attendance/{student_id} - Attendance history with statistics
"""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query

from siwes_portal.core.access import student_access
from siwes_portal.core.auth import require_role
from siwes_portal.db import Store, get_store
from siwes_portal.models import ALL_ROLES, Role
from siwes_portal.schemas.schemas import (
    AttendanceCreate, AttendanceCreatedResponse, AttendanceHistoryResponse,
    AttendanceResponse, AttendanceStatistics,
)
from siwes_portal.services.attendance_service import AttendanceService
from siwes_portal.services.notification_service import dispatch_notifications

router = APIRouter(prefix="/attendance", tags=["Attendance"])


def get_attendance_service(store: Store = Depends(get_store)) -> AttendanceService:
    return AttendanceService(store)


@router.post("", response_model=AttendanceCreatedResponse, status_code=201)
async def mark_attendance(
    body: AttendanceCreate,
    background_tasks: BackgroundTasks,
    user: dict = Depends(require_role(Role.INDUSTRY_SUPERVISOR)),
    store: Store = Depends(get_store),
    service: AttendanceService = Depends(get_attendance_service),
):
    """Mark attendance once per student per day. Freezes that day's logbook entry."""
    result = service.mark_attendance(user["user_id"], body.student_id, body.date, body.present, body.notes)
    background_tasks.add_task(dispatch_notifications, store, result.notifications)
    return AttendanceCreatedResponse(
        message="Attendance marked successfully",
        attendance=AttendanceResponse.from_record(result.record),
    )


@router.get("/{student_id}", response_model=AttendanceHistoryResponse)
async def attendance_history(
    student_id: str,
    month: Optional[str] = Query(None, description="YYYY-MM"),
    limit: int = Query(50, ge=1, le=100),
    user: dict = Depends(student_access(*ALL_ROLES)),
    service: AttendanceService = Depends(get_attendance_service),
):
    records, stats = service.history(student_id, month, limit)
    return AttendanceHistoryResponse(
        attendance=[AttendanceResponse.from_record(r) for r in records],
        statistics=AttendanceStatistics(**stats),
    )
