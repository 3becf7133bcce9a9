"""
Notification Service

Transitions never write notifications themselves. They return
PendingNotification values next to the new state, and the route hands those
to dispatch_notifications() as a background task once the state change is
stored. Dispatch is best-effort: a failure is logged and dropped, it never
undoes or fails the transition that triggered it.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional

from siwes_portal.db.store import Store
from siwes_portal.models import Notification, NotificationType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingNotification:
    user_id: str
    title: str
    message: str
    type: NotificationType = NotificationType.INFO


@dataclass
class TransitionResult:
    """New state of a record plus the side effects to run after it is stored."""
    record: Any
    notifications: List[PendingNotification] = field(default_factory=list)


def dispatch_notifications(store: Store, pending: Iterable[PendingNotification]) -> int:
    """Create each notification; returns how many were stored."""
    delivered = 0
    for item in pending:
        try:
            store.create_notification(Notification(
                user_id=item.user_id,
                title=item.title,
                message=item.message,
                type=item.type,
            ))
            delivered += 1
        except Exception:
            logger.exception(f"Failed to create notification '{item.title}' for user {item.user_id}")
    return delivered


# ============================================================
# MESSAGE BUILDERS
# ============================================================

def logbook_submitted(student_id: str, student_name: str, entry_date: str,
                      supervisor_ids: Iterable[str]) -> List[PendingNotification]:
    pending = [PendingNotification(
        user_id=student_id,
        title="Logbook Entry Submitted",
        message=f'Your logbook entry "Entry for {entry_date}" has been submitted successfully.',
        type=NotificationType.SUCCESS,
    )]
    for supervisor_id in supervisor_ids:
        pending.append(PendingNotification(
            user_id=supervisor_id,
            title="Logbook Entry Awaiting Review",
            message=f"{student_name} submitted the logbook entry for {entry_date}.",
            type=NotificationType.INFO,
        ))
    return pending


def logbook_reviewed(student_id: str, entry_date: str, status: str, comments: Optional[str] = None) -> PendingNotification:
    message = f"Your logbook entry for {entry_date} has been {status.lower()}."
    if comments:
        message += f" Comment: {comments}"
    return PendingNotification(
        user_id=student_id,
        title=f"Logbook Entry {status}",
        message=message,
        type=NotificationType.SUCCESS if status == "APPROVED" else NotificationType.WARNING,
    )


def attendance_marked(student_id: str, entry_date: str, present: bool) -> PendingNotification:
    return PendingNotification(
        user_id=student_id,
        title="Attendance Updated",
        message=f"Your attendance for {entry_date} has been marked as {'present' if present else 'absent'}.",
        type=NotificationType.SUCCESS if present else NotificationType.WARNING,
    )
