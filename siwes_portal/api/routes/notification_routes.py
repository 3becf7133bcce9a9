"""
Notification Routes

GET   /notifications - Current user's notifications, newest first
PATCH /notifications/mark-all-read - Mark every notification read
PATCH /notifications/{notification_id}/read - Mark one notification read
"""

from fastapi import APIRouter, Depends, Query

from siwes_portal.core.auth import get_current_user
from siwes_portal.core.exceptions import NotFoundError
from siwes_portal.db import Store, get_store
from siwes_portal.schemas.schemas import (
    CountResponse, NotificationEnvelope, NotificationListResponse, NotificationResponse, Pagination,
)

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    unread_only: bool = Query(False, alias="unreadOnly"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: dict = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    items, total = store.list_notifications(user["user_id"], unread_only, limit, offset)
    return NotificationListResponse(
        notifications=[NotificationResponse.from_record(n) for n in items],
        pagination=Pagination.build(total, limit, offset),
        unread_count=store.count_unread_notifications(user["user_id"]),
    )


@router.patch("/mark-all-read", response_model=CountResponse)
async def mark_all_read(user: dict = Depends(get_current_user), store: Store = Depends(get_store)):
    updated = store.mark_all_notifications_read(user["user_id"])
    return CountResponse(message="All notifications marked as read", updated=updated)


@router.patch("/{notification_id}/read", response_model=NotificationEnvelope)
async def mark_read(
    notification_id: str,
    user: dict = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    """Only the recipient can mark a notification; others get 404."""
    notification = store.mark_notification_read(notification_id, user["user_id"])
    if notification is None:
        raise NotFoundError("Notification not found")
    return NotificationEnvelope(notification=NotificationResponse.from_record(notification))
