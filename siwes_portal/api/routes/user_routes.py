"""
User Administration Routes

GET    /admin/users - List users, newest first (role, isActive, search filters)
GET    /admin/users/stats - Total users and count per role
GET    /admin/users/{user_id} - One user, with the Student record for students
POST   /admin/users - Create an account of any role
DELETE /admin/users/{user_id} - Delete an account that nothing depends on
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from siwes_portal.core.auth import hash_password, require_role
from siwes_portal.core.exceptions import ConflictError, DuplicateRecordError, NotFoundError, ValidationError
from siwes_portal.db import Store, get_store
from siwes_portal.models import SUPERVISOR_ROLES, Role, Student, User
from siwes_portal.schemas.schemas import (
    AdminUserCreate,
    DeletedUserResponse,
    Pagination,
    StudentResponse,
    UserDetailResponse,
    UserListResponse,
    UserResponse,
    UserStatsResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/users", tags=["User Administration"])

admin_only = require_role(Role.ADMIN)


def _get_user_or_404(store: Store, user_id: str) -> User:
    user = store.get_user(user_id)
    if user is None:
        raise NotFoundError("User not found", code="USER_NOT_FOUND")
    return user


def _dependencies(store: Store, user: User) -> List[str]:
    """Records that would be lost or orphaned by deleting user."""
    found = []
    if user.role == Role.STUDENT:
        if store.count_entries(student_ids=[user.id]) > 0:
            found.append("logbook entries")
        if store.list_attendance(user.id, limit=1):
            found.append("attendance records")
    elif user.role in SUPERVISOR_ROLES:
        assigned = len(store.list_students_for_supervisor(user.id, role=user.role))
        if assigned > 0:
            slot = "industry" if user.role == Role.INDUSTRY_SUPERVISOR else "school"
            found.append(f"{assigned} assigned students ({slot} supervisor)")
    return found


@router.get("", response_model=UserListResponse)
async def list_users(
    role: Optional[Role] = Query(None),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    search: Optional[str] = Query(None, max_length=100),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: dict = Depends(admin_only),
    store: Store = Depends(get_store),
):
    users, total = store.list_users(
        role=role,
        is_active=is_active,
        search=search.strip() if search and search.strip() else None,
        limit=limit,
        offset=offset,
    )
    return UserListResponse(
        users=[UserResponse.from_record(u) for u in users],
        pagination=Pagination.build(total, limit, offset),
    )


@router.get("/stats", response_model=UserStatsResponse)
async def user_stats(user: dict = Depends(admin_only), store: Store = Depends(get_store)):
    by_role = store.count_users_by_role()
    return UserStatsResponse(
        total_users=sum(by_role.values()),
        users_by_role={role.value: count for role, count in by_role.items()},
    )


@router.get("/{user_id}", response_model=UserDetailResponse)
async def get_user(user_id: str, user: dict = Depends(admin_only), store: Store = Depends(get_store)):
    record = _get_user_or_404(store, user_id)
    student = store.get_student(user_id) if record.role == Role.STUDENT else None
    return UserDetailResponse(
        **UserResponse.from_record(record).model_dump(),
        student=StudentResponse.from_record(student, record) if student else None,
    )


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(body: AdminUserCreate, user: dict = Depends(admin_only), store: Store = Depends(get_store)):
    """Students also get their Student record; supervisors are assigned separately."""
    record = User(
        email=body.email.lower(),
        name=body.name,
        role=body.role,
        password_hash=hash_password(body.password),
    )
    student = None
    if body.role == Role.STUDENT:
        student = Student(id=record.id, department=body.department, matric_number=body.matric_number)

    try:
        created = store.create_user(record, student)
    except DuplicateRecordError:
        raise ConflictError("Email already registered", code="EMAIL_TAKEN")

    logger.info(f"Admin {user['user_id']} created {body.role.value} {created.id}")
    return UserResponse.from_record(created)


@router.delete("/{user_id}", response_model=DeletedUserResponse)
async def delete_user(user_id: str, user: dict = Depends(admin_only), store: Store = Depends(get_store)):
    """
    Refused with 409 while the user still owns logbook entries or attendance,
    or still has students assigned to them.
    """
    if user_id == user["user_id"]:
        raise ValidationError("You cannot delete your own account", code="CANNOT_DELETE_SELF")
    record = _get_user_or_404(store, user_id)

    dependencies = _dependencies(store, record)
    if dependencies:
        raise ConflictError(
            "Cannot delete user with existing dependencies",
            code="USER_HAS_DEPENDENCIES",
            details={
                "dependencies": dependencies,
                "message": f"This user cannot be deleted because they have: {', '.join(dependencies)}. "
                           "Please resolve these dependencies first.",
            },
        )

    try:
        deleted = store.delete_user(user_id)
    except DuplicateRecordError:
        raise ConflictError(
            "Cannot delete user due to existing references",
            code="USER_REFERENCED",
            details={
                "message": "This user is referenced by other records in the system. "
                           "Please remove those references first.",
            },
        )
    if not deleted:
        raise NotFoundError("User not found", code="USER_NOT_FOUND")

    logger.info(f"Admin {user['user_id']} deleted {record.role.value} {user_id}")
    return DeletedUserResponse(message="User deleted successfully", deleted_user=UserResponse.from_record(record))
