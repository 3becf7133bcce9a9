"""
Authentication Routes

POST /auth/signup - Create the first Admin account (disabled once any account exists)
POST /auth/register - Student self-registration (staff accounts are created by an admin)
POST /auth/login - Login and get JWT token
GET /auth/me - Get current user info
"""

import logging

from fastapi import APIRouter, Depends

from siwes_portal.core.auth import create_access_token, get_current_user, hash_password, verify_password
from siwes_portal.core.exceptions import (
    AuthenticationError,
    ConflictError,
    DuplicateRecordError,
    ForbiddenError,
    NotFoundError,
)
from siwes_portal.db import Store, get_store
from siwes_portal.models import Role, Student, User
from siwes_portal.schemas.schemas import (
    LoginRequest, MessageResponse, RegisterRequest, SignupRequest, SignupResponse, TokenResponse, UserResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/signup", response_model=SignupResponse, status_code=201)
async def signup(request: SignupRequest, store: Store = Depends(get_store)):
    """
    Bootstrap the portal's first administrator.

    Only accepted while the user table is empty; every later account is
    provisioned through /admin/users or student self-registration.
    """
    if sum(store.count_users_by_role().values()) > 0:
        raise ForbiddenError("Signup is disabled after the first admin is created.", code="SIGNUP_DISABLED")

    user = User(
        email=request.email.lower(),
        name=request.name,
        role=Role.ADMIN,
        password_hash=hash_password(request.password),
    )
    try:
        store.create_user(user)
    except DuplicateRecordError:
        raise ConflictError("Email already registered", code="EMAIL_TAKEN")

    logger.info(f"Bootstrapped first admin {user.id}")
    return SignupResponse(user=UserResponse.from_record(user))


@router.post("/register", response_model=MessageResponse, status_code=201)
async def register(request: RegisterRequest, store: Store = Depends(get_store)):
    """
    Register a new student account.

    Supervisor and admin accounts are created by an administrator.
    """
    if request.role != Role.STUDENT:
        raise ForbiddenError(
            "Only students can self-register; staff accounts are created by an administrator",
            code="SELF_REGISTRATION_DISABLED",
        )

    user = User(
        email=request.email.lower(),
        name=request.name,
        role=Role.STUDENT,
        password_hash=hash_password(request.password),
    )
    student = Student(id=user.id, department=request.department, matric_number=request.matric_number)

    try:
        store.create_user(user, student)
    except DuplicateRecordError:
        raise ConflictError("Email already registered", code="EMAIL_TAKEN")

    logger.info(f"Registered Student {user.id}")
    return MessageResponse(message="Registered successfully as Student. Please login.")


@router.post("/login", response_model=TokenResponse)
async def login(request: LoginRequest, store: Store = Depends(get_store)):
    """
    Login and receive JWT access token.

    Include token in requests: Authorization: Bearer <token>
    """
    user = store.get_user_by_email(request.email)

    if not user or not verify_password(request.password, user.password_hash):
        logger.warning("Login failed: invalid credentials")
        raise AuthenticationError("Invalid email or password", code="INVALID_CREDENTIALS")

    if not user.is_active:
        raise ForbiddenError("Account deactivated", code="ACCOUNT_DEACTIVATED")

    token = create_access_token(data={"sub": user.id, "role": user.role.value})
    return TokenResponse(access_token=token, user_id=user.id, role=user.role)


@router.get("/me", response_model=UserResponse)
async def get_me(user: dict = Depends(get_current_user), store: Store = Depends(get_store)):
    """Get current authenticated user's info."""
    record = store.get_user(user["user_id"])
    if record is None:
        raise NotFoundError("User not found")
    return UserResponse.from_record(record)
