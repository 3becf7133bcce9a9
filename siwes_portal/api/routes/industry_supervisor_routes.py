"""
Industry Supervisor Routes

POST /industry-supervisors/upload - Student submits their industry supervisor as a CSV file
GET  /industry-supervisors/status - Whether the calling student has an industry supervisor
GET  /industry-supervisors/export-template - CSV template for the upload

The upload is how a student without an admin-made assignment unlocks
logbook writes: the first valid row names the supervisor, who is linked to
the student and created as an IndustrySupervisor account when the email is
new.
"""

import csv
import io
import logging
import secrets
from typing import List, Optional

import pydantic
from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import StreamingResponse

from siwes_portal.core.auth import hash_password, require_role
from siwes_portal.core.exceptions import DuplicateRecordError, NotFoundError, ValidationError
from siwes_portal.db import Store, get_store
from siwes_portal.models import Role, Student, User
from siwes_portal.schemas.schemas import (
    IndustrySupervisorResult, IndustrySupervisorRow, IndustrySupervisorStatus, UserSummary,
)
from siwes_portal.utils.file_upload import get_file_extension

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/industry-supervisors", tags=["Industry Supervisors"])

TEMPLATE_COLUMNS = ["name", "email", "company", "position"]
TEMPLATE_EXAMPLE = ["John Doe", "johndoe@example.com", "ABC Company", "Supervisor"]


def _own_student(store: Store, student_id: str) -> Student:
    student = store.get_student(student_id)
    if student is None:
        raise NotFoundError("Student record not found", code="STUDENT_NOT_FOUND")
    return student


def read_supervisor_rows(content: bytes) -> List[IndustrySupervisorRow]:
    """Rows with a name and a valid email; anything else is skipped."""
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise ValidationError("CSV file must be UTF-8 encoded", code="INVALID_CSV")

    rows = []
    for raw in csv.DictReader(io.StringIO(text)):
        values = {
            key.strip().lower(): value.strip()
            for key, value in raw.items()
            if key and isinstance(value, str) and value.strip()
        }
        try:
            rows.append(IndustrySupervisorRow(**values))
        except pydantic.ValidationError:
            continue
    return rows


def _find_or_create_supervisor(store: Store, row: IndustrySupervisorRow) -> User:
    email = row.email.lower()
    supervisor = store.get_user_by_email(email)
    if supervisor is None:
        try:
            supervisor = store.create_user(User(
                email=email,
                name=row.name,
                role=Role.INDUSTRY_SUPERVISOR,
                password_hash=hash_password(secrets.token_urlsafe(12)),
            ))
            logger.info(f"Created industry supervisor {supervisor.id} from student submission")
        except DuplicateRecordError:
            supervisor = store.get_user_by_email(email)

    if supervisor is None or supervisor.role != Role.INDUSTRY_SUPERVISOR:
        raise ValidationError(
            "This email belongs to an account that is not an industry supervisor",
            details={"field": "email"},
        )
    return supervisor


@router.post("/upload", response_model=IndustrySupervisorResult)
async def upload_supervisor(
    file: Optional[UploadFile] = File(None),
    user: dict = Depends(require_role(Role.STUDENT)),
    store: Store = Depends(get_store),
):
    """
    Submit the student's industry supervisor.

    CSV columns: name, email, company, position. Only the first valid row is
    used. Once a supervisor is assigned, changes go through an administrator.
    """
    if file is None or not file.filename:
        raise ValidationError("No CSV file provided", details={"field": "file"})
    if get_file_extension(file.filename) != ".csv":
        raise ValidationError("Only CSV files are allowed", details={"field": "file"})

    student = _own_student(store, user["user_id"])
    if student.industry_supervisor_id:
        raise ValidationError(
            "Industry supervisor already assigned",
            code="SUPERVISOR_ALREADY_ASSIGNED",
            details={
                "message": "You already have an industry supervisor assigned. "
                           "Please contact an administrator if you need to change your supervisor.",
            },
        )

    rows = read_supervisor_rows(await file.read())
    if not rows:
        raise ValidationError(
            "Invalid CSV format",
            code="INVALID_CSV",
            details={
                "message": 'The CSV file must contain at least one row with "name" and "email" columns.',
            },
        )

    supervisor = _find_or_create_supervisor(store, rows[0])
    store.update_student_supervisors(student.id, supervisor.id, student.school_supervisor_id)

    logger.info(f"Student {student.id} linked industry supervisor {supervisor.id}")
    return IndustrySupervisorResult(
        message="Industry supervisor information processed successfully",
        supervisor=UserSummary(id=supervisor.id, name=supervisor.name, email=supervisor.email),
    )


@router.get("/status", response_model=IndustrySupervisorStatus)
async def supervisor_status(user: dict = Depends(require_role(Role.STUDENT)), store: Store = Depends(get_store)):
    student = _own_student(store, user["user_id"])
    supervisor = store.get_user(student.industry_supervisor_id) if student.industry_supervisor_id else None
    return IndustrySupervisorStatus(
        has_industry_supervisor=supervisor is not None,
        supervisor=UserSummary(id=supervisor.id, name=supervisor.name, email=supervisor.email) if supervisor else None,
    )


@router.get("/export-template")
async def export_template(user: dict = Depends(require_role(Role.STUDENT, Role.ADMIN))):
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow(TEMPLATE_COLUMNS)
    writer.writerow(TEMPLATE_EXAMPLE)
    output.seek(0)

    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=industry-supervisor-template.csv"},
    )
