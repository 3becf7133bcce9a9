"""
Logbook Review Routes (industry supervisors)

POST /logbook/review/{entry_id} - Approve or reject a submitted entry
GET  /logbook/pending-reviews - Submitted entries awaiting review, oldest first
GET  /logbook/reviewed - Entries reviewed by the caller, newest review first
GET  /logbook/review/stats - Review counts and progress
"""

from typing import Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request

from siwes_portal.core.auth import require_role
from siwes_portal.db import Store, get_store
from siwes_portal.models import LogbookEntry, ReviewStatus, Role
from siwes_portal.schemas.schemas import (
    EntryWithStudentResponse, LogbookEntryResponse, PaginatedEntriesResponse, Pagination,
    ReviewRequest, ReviewResultResponse, ReviewStatsResponse, StudentInfo,
)
from siwes_portal.services.notification_service import dispatch_notifications
from siwes_portal.services.review_service import ReviewService

router = APIRouter(prefix="/logbook", tags=["Logbook Review"])

industry_supervisor = require_role(Role.INDUSTRY_SUPERVISOR)


def get_review_service(store: Store = Depends(get_store)) -> ReviewService:
    return ReviewService(store)


def _with_students(entries: List[LogbookEntry], request: Request, store: Store) -> List[EntryWithStudentResponse]:
    """Attach name/email/matric of each entry's student."""
    students: Dict[str, Optional[StudentInfo]] = {}
    result = []
    for entry in entries:
        if entry.student_id not in students:
            user = store.get_user(entry.student_id)
            student = store.get_student(entry.student_id)
            students[entry.student_id] = StudentInfo(
                id=entry.student_id,
                name=user.name if user else None,
                email=user.email if user else None,
                matric_number=student.matric_number if student else None,
                department=student.department if student else None,
            )
        result.append(EntryWithStudentResponse.from_record(entry, request, student=students[entry.student_id]))
    return result


@router.post("/review/{entry_id}", response_model=ReviewResultResponse)
async def review_entry(
    entry_id: str,
    body: ReviewRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    user: dict = Depends(industry_supervisor),
    store: Store = Depends(get_store),
    service: ReviewService = Depends(get_review_service),
):
    """Record the one-time review decision and notify the student."""
    result = service.review_entry(entry_id, user["user_id"], body.review_status, body.review_comments)
    background_tasks.add_task(dispatch_notifications, store, result.notifications)
    return ReviewResultResponse(
        message="Logbook entry reviewed successfully",
        entry=LogbookEntryResponse.from_record(result.record, request),
    )


@router.get("/pending-reviews", response_model=PaginatedEntriesResponse)
async def pending_reviews(
    request: Request,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: dict = Depends(industry_supervisor),
    store: Store = Depends(get_store),
    service: ReviewService = Depends(get_review_service),
):
    """Oldest submissions first, so nobody waits behind newer entries."""
    entries, total = service.pending_reviews(user["user_id"], limit, offset)
    return PaginatedEntriesResponse(
        entries=_with_students(entries, request, store),
        pagination=Pagination.build(total, limit, offset),
    )


@router.get("/reviewed", response_model=PaginatedEntriesResponse)
async def reviewed_entries(
    request: Request,
    status: Optional[ReviewStatus] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: dict = Depends(industry_supervisor),
    store: Store = Depends(get_store),
    service: ReviewService = Depends(get_review_service),
):
    entries, total = service.reviewed_entries(user["user_id"], status, limit, offset)
    return PaginatedEntriesResponse(
        entries=_with_students(entries, request, store),
        pagination=Pagination.build(total, limit, offset),
    )


@router.get("/review/stats", response_model=ReviewStatsResponse)
async def review_stats(
    user: dict = Depends(industry_supervisor),
    service: ReviewService = Depends(get_review_service),
):
    return ReviewStatsResponse(**service.stats(user["user_id"]))
