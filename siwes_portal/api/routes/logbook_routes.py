"""
Student Logbook Routes

POST  /students/{student_id}/logbook - Create entry (multipart: date, description, image?)
PATCH /students/{student_id}/logbook/{entry_id} - Edit a draft entry
PATCH /students/{student_id}/logbook/{entry_id}/submit - Submit entry for review
GET   /students/{student_id}/logbook - All entries, oldest day first
GET   /students/{student_id}/logbook/recent - Five most recent entries
GET   /students/{student_id}/logbook/with-reviews - Entries with reviewer info
GET   /students/{student_id}/logbook/analytics - Entry and attendance totals
GET   /students/{student_id}/logbook/{entry_id} - Single entry

Every route runs the student-resource guard; writes are Student-only and
also require an assigned industry supervisor.
"""

import datetime as dt
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Request, UploadFile

from siwes_portal.core.access import industry_supervisor_required, student_access
from siwes_portal.core.exceptions import PortalError, ValidationError
from siwes_portal.db import Store, get_store
from siwes_portal.models import ALL_ROLES, Role
from siwes_portal.schemas.schemas import (
    EntryEnvelope, EntryListResponse, EntryWithReviewerResponse, EntryWithReviewsListResponse,
    LogbookAnalyticsResponse, LogbookEntryResponse, UserSummary,
)
from siwes_portal.services.logbook_service import LogbookService
from siwes_portal.services.notification_service import dispatch_notifications
from siwes_portal.utils.file_upload import discard_upload, save_logbook_image

router = APIRouter(prefix="/students", tags=["Logbook"])

DESCRIPTION_MIN_LENGTH = 5


def get_logbook_service(store: Store = Depends(get_store)) -> LogbookService:
    return LogbookService(store)


def parse_iso_date(value: str) -> dt.date:
    """Accept '2024-01-10' or a full ISO-8601 timestamp; keep the calendar day."""
    value = value.strip()
    try:
        return dt.date.fromisoformat(value)
    except ValueError:
        pass
    try:
        return dt.datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError:
        raise ValidationError(
            "Validation failed",
            code="VALIDATION_ERROR",
            details={"errors": [{"field": "date", "message": "date must be an ISO-8601 date"}]},
        )


@router.post("/{student_id}/logbook", response_model=EntryEnvelope, status_code=201)
async def create_entry(
    student_id: str,
    request: Request,
    date: str = Form(...),
    description: str = Form(..., min_length=DESCRIPTION_MIN_LENGTH),
    image: Optional[UploadFile] = File(None),
    user: dict = Depends(student_access(Role.STUDENT)),
    _: None = Depends(industry_supervisor_required),
    service: LogbookService = Depends(get_logbook_service),
):
    """Create a draft entry. One entry per day."""
    day = parse_iso_date(date)
    image_url = await save_logbook_image(image)
    try:
        result = service.create_entry(student_id, day, description, image_url)
    except PortalError:
        discard_upload(image_url)
        raise
    return EntryEnvelope(entry=LogbookEntryResponse.from_record(result.record, request))


@router.patch("/{student_id}/logbook/{entry_id}", response_model=EntryEnvelope)
async def edit_entry(
    student_id: str,
    entry_id: str,
    request: Request,
    description: Optional[str] = Form(None, min_length=DESCRIPTION_MIN_LENGTH),
    image: Optional[UploadFile] = File(None),
    user: dict = Depends(student_access(Role.STUDENT)),
    _: None = Depends(industry_supervisor_required),
    service: LogbookService = Depends(get_logbook_service),
):
    """Edit description/image of a draft. Blocked once submitted or attendance is marked."""
    image_url = await save_logbook_image(image)
    try:
        result = service.edit_entry(student_id, entry_id, description, image_url)
    except PortalError:
        discard_upload(image_url)
        raise
    return EntryEnvelope(entry=LogbookEntryResponse.from_record(result.record, request))


@router.patch("/{student_id}/logbook/{entry_id}/submit", response_model=EntryEnvelope)
async def submit_entry(
    student_id: str,
    entry_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    user: dict = Depends(student_access(Role.STUDENT)),
    store: Store = Depends(get_store),
    service: LogbookService = Depends(get_logbook_service),
):
    """Submit a draft for supervisor review. Cannot be undone."""
    result = service.submit_entry(student_id, entry_id)
    background_tasks.add_task(dispatch_notifications, store, result.notifications)
    return EntryEnvelope(entry=LogbookEntryResponse.from_record(result.record, request))


@router.get("/{student_id}/logbook", response_model=EntryListResponse)
async def list_entries(
    student_id: str,
    request: Request,
    user: dict = Depends(student_access(*ALL_ROLES)),
    service: LogbookService = Depends(get_logbook_service),
):
    """All entries of the student, oldest day first."""
    entries = service.list_entries(student_id)
    return EntryListResponse(entries=[LogbookEntryResponse.from_record(e, request) for e in entries])


@router.get("/{student_id}/logbook/recent", response_model=EntryListResponse)
async def recent_entries(
    student_id: str,
    request: Request,
    user: dict = Depends(student_access(*ALL_ROLES)),
    service: LogbookService = Depends(get_logbook_service),
):
    """Latest entries for the dashboard."""
    entries = service.recent_entries(student_id)
    return EntryListResponse(entries=[LogbookEntryResponse.from_record(e, request) for e in entries])


@router.get("/{student_id}/logbook/with-reviews", response_model=EntryWithReviewsListResponse)
async def entries_with_reviews(
    student_id: str,
    request: Request,
    user: dict = Depends(student_access(*ALL_ROLES)),
    service: LogbookService = Depends(get_logbook_service),
):
    entries = []
    for entry, reviewer in service.entries_with_reviews(student_id):
        info = UserSummary(id=reviewer.id, name=reviewer.name, email=reviewer.email) if reviewer else None
        entries.append(EntryWithReviewerResponse.from_record(entry, request, reviewer=info))
    return EntryWithReviewsListResponse(entries=entries)


@router.get("/{student_id}/logbook/analytics", response_model=LogbookAnalyticsResponse)
async def logbook_analytics(
    student_id: str,
    user: dict = Depends(student_access(*ALL_ROLES)),
    service: LogbookService = Depends(get_logbook_service),
):
    return LogbookAnalyticsResponse(**service.analytics(student_id))


@router.get("/{student_id}/logbook/{entry_id}", response_model=EntryEnvelope)
async def get_entry(
    student_id: str,
    entry_id: str,
    request: Request,
    user: dict = Depends(student_access(*ALL_ROLES)),
    service: LogbookService = Depends(get_logbook_service),
):
    entry = service.get_entry(student_id, entry_id)
    return EntryEnvelope(entry=LogbookEntryResponse.from_record(entry, request))
