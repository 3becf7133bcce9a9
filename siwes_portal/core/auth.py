"""
Authentication Utility - JWT and Password handling.

Provides:
- Password hashing with bcrypt
- JWT token creation/verification
- FastAPI dependencies for protected routes (bearer token + role check)
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from siwes_portal.core.config import get_settings
from siwes_portal.core.exceptions import AuthenticationError, ForbiddenError
from siwes_portal.core.logging_config import set_user_id
from siwes_portal.db import Store, get_store
from siwes_portal.models import Role

logger = logging.getLogger(__name__)

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Bearer token extractor; missing header is reported by get_current_user
bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    """Hash password with bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash."""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token."""
    settings = get_settings()
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify JWT token."""
    settings = get_settings()
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    store: Store = Depends(get_store),
) -> dict:
    """
    FastAPI dependency - Get current authenticated user.

    The role always comes from the stored user, never from the token.

    Usage:
        @router.get("/protected")
        async def route(user: dict = Depends(get_current_user)):
            return user
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError("No token provided")

    payload = decode_token(credentials.credentials)
    if not payload or not payload.get("sub"):
        raise AuthenticationError()

    user = store.get_user(payload["sub"])
    if not user:
        raise AuthenticationError()

    if not user.is_active:
        raise ForbiddenError("Account deactivated", code="ACCOUNT_DEACTIVATED")

    set_user_id(user.id)
    return {"user_id": user.id, "email": user.email, "name": user.name, "role": user.role}


def require_role(*roles: Role):
    """
    Dependency factory - allow only callers whose role is in roles.

    Usage:
        @router.get("/admin-only")
        async def route(user: dict = Depends(require_role(Role.ADMIN))):
            ...
    """
    async def checker(user: dict = Depends(get_current_user)) -> dict:
        if user["role"] not in roles:
            logger.warning(f"Role {user['role'].value} rejected; requires {[r.value for r in roles]}")
            raise ForbiddenError("Forbidden: insufficient role", code="INSUFFICIENT_ROLE")
        return user

    return checker
