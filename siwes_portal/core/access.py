"""
Student-resource access control.

check_student_access() is the single policy deciding whether a caller may act
on a student's records. It returns an AccessDecision instead of raising so
the policy can be tested on its own; the FastAPI guards below enforce it.

    Admin               -> always allowed
    Student             -> only their own records
    School/Industry sup -> only students they are assigned to
    anything else       -> forbidden

The decision is taken fresh on every request; supervisor assignments can
change between calls.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional

from fastapi import Depends, Request

from siwes_portal.core.auth import get_current_user, require_role
from siwes_portal.core.exceptions import (
    ForbiddenError,
    NotFoundError,
    ServerError,
)
from siwes_portal.db import Store, get_store
from siwes_portal.models import Role

logger = logging.getLogger(__name__)

MUTATING_METHODS = {"POST", "PUT", "PATCH"}


class DenyReason(str, Enum):
    STUDENT_NOT_FOUND = "STUDENT_NOT_FOUND"
    NOT_ASSIGNED = "NOT_ASSIGNED"
    FORBIDDEN = "FORBIDDEN"


_DENIALS = {
    DenyReason.STUDENT_NOT_FOUND: (NotFoundError, "Student not found"),
    DenyReason.NOT_ASSIGNED: (ForbiddenError, "You are not assigned as a supervisor for this student"),
    DenyReason.FORBIDDEN: (ForbiddenError, "You do not have permission to access this student's data"),
}


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: Optional[DenyReason] = None

    @classmethod
    def allow(cls) -> "AccessDecision":
        return cls(True)

    @classmethod
    def deny(cls, reason: DenyReason) -> "AccessDecision":
        return cls(False, reason)

    def enforce(self) -> None:
        """Raise the error matching the deny reason; no-op when allowed."""
        if self.allowed:
            return
        error_cls, message = _DENIALS[self.reason]
        raise error_cls(message, code=self.reason.value)


# ============================================================
# POLICIES (one per role)
# ============================================================

def _admin_policy(caller_id: str, student_id: str, store: Store) -> AccessDecision:
    return AccessDecision.allow()


def _student_policy(caller_id: str, student_id: str, store: Store) -> AccessDecision:
    if caller_id == student_id:
        return AccessDecision.allow()
    return AccessDecision.deny(DenyReason.FORBIDDEN)


def _supervisor_policy(caller_id: str, student_id: str, store: Store) -> AccessDecision:
    try:
        student = store.get_student(student_id)
    except Exception as e:
        raise ServerError("Server error checking permissions") from e

    if student is None:
        return AccessDecision.deny(DenyReason.STUDENT_NOT_FOUND)
    if caller_id in (student.industry_supervisor_id, student.school_supervisor_id):
        return AccessDecision.allow()
    return AccessDecision.deny(DenyReason.NOT_ASSIGNED)


_POLICIES: Dict[Role, Callable[[str, str, Store], AccessDecision]] = {
    Role.ADMIN: _admin_policy,
    Role.STUDENT: _student_policy,
    Role.SCHOOL_SUPERVISOR: _supervisor_policy,
    Role.INDUSTRY_SUPERVISOR: _supervisor_policy,
}


def check_student_access(role: Role, caller_id: str, student_id: str, store: Store) -> AccessDecision:
    """Decide whether (role, caller_id) may act on student_id's resources."""
    policy = _POLICIES.get(role)
    if policy is None or not student_id:
        return AccessDecision.deny(DenyReason.FORBIDDEN)
    return policy(caller_id, student_id, store)


def check_industry_supervisor_assigned(role: Role, caller_id: str, store: Store) -> None:
    """
    Students may only create or change records once an industry supervisor
    is assigned to them. Other roles pass through.
    """
    if role != Role.STUDENT:
        return
    try:
        student = store.get_student(caller_id)
    except Exception as e:
        raise ServerError("Server error checking industry supervisor assignment") from e

    if student is None:
        raise NotFoundError("Student record not found", code="STUDENT_NOT_FOUND")
    if not student.industry_supervisor_id:
        raise ForbiddenError(
            "Industry supervisor information not submitted",
            code="INDUSTRY_SUPERVISOR_REQUIRED",
            details={
                "message": "You must submit your industry supervisor information "
                           "before creating or updating entries",
            },
        )


# ============================================================
# FASTAPI GUARDS
# ============================================================

def student_access(*roles: Role):
    """
    Dependency factory: role check, then the student-resource policy for the
    {student_id} path parameter. Returns the current user dict.
    """
    role_checker = require_role(*roles)

    async def guard(
        student_id: str,
        user: dict = Depends(role_checker),
        store: Store = Depends(get_store),
    ) -> dict:
        decision = check_student_access(user["role"], user["user_id"], student_id, store)
        if not decision.allowed:
            logger.warning(
                f"Access to student {student_id} denied for {user['role'].value} "
                f"{user['user_id']}: {decision.reason.value}"
            )
        decision.enforce()
        return user

    return guard


async def industry_supervisor_required(
    request: Request,
    user: dict = Depends(get_current_user),
    store: Store = Depends(get_store),
) -> None:
    """Read-only requests and non-student callers bypass the check."""
    if request.method not in MUTATING_METHODS:
        return
    check_industry_supervisor_assigned(user["role"], user["user_id"], store)
