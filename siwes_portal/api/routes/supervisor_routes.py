"""
Supervisor Routes

GET /supervisors/students - Students assigned to the calling supervisor
"""

from fastapi import APIRouter, Depends

from siwes_portal.core.auth import require_role
from siwes_portal.db import Store, get_store
from siwes_portal.models import SUPERVISOR_ROLES
from siwes_portal.schemas.schemas import StudentListResponse, StudentResponse

router = APIRouter(prefix="/supervisors", tags=["Supervisors"])


@router.get("/students", response_model=StudentListResponse)
async def my_students(user: dict = Depends(require_role(*SUPERVISOR_ROLES)), store: Store = Depends(get_store)):
    """Industry supervisors see their industry students, school supervisors their school students."""
    students = store.list_students_for_supervisor(user["user_id"], role=user["role"])
    return StudentListResponse(
        students=[StudentResponse.from_record(s, store.get_user(s.id)) for s in students],
        total=len(students),
    )
