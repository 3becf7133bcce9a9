"""
Portal exceptions
=================

Every decision taken by the access guards and the logbook state machine
resolves to one of these. The API layer renders them as
``{"error": message, "code": CODE, ...details}`` with ``status_code``.

Usage:
    from siwes_portal.core.exceptions import ConflictError

    if entry.submitted:
        raise ConflictError("Entry already submitted", code="ALREADY_SUBMITTED")
"""

from typing import Any, Dict, Optional


class PortalError(Exception):
    """Base exception for all portal errors"""

    status_code = 500
    default_code = "SERVER_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body = {"error": self.message, "code": self.code}
        body.update(self.details)
        return body


class ValidationError(PortalError):
    """Request failed field validation"""

    status_code = 400
    default_code = "VALIDATION_ERROR"


class AuthenticationError(PortalError):
    """Missing, invalid or revoked bearer token"""

    status_code = 401
    default_code = "UNAUTHORIZED"

    def __init__(self, message: str = "Invalid or expired token", code: Optional[str] = None):
        super().__init__(message, code=code)


class ForbiddenError(PortalError):
    """Caller is authenticated but not allowed to act on the resource"""

    status_code = 403
    default_code = "FORBIDDEN"


class NotFoundError(PortalError):
    status_code = 404
    default_code = "NOT_FOUND"


class ConflictError(PortalError):
    """A lifecycle precondition was violated"""

    status_code = 409
    default_code = "CONFLICT"


class ServerError(PortalError):
    status_code = 500
    default_code = "SERVER_ERROR"


# ============================================
# Persistence errors
# ============================================

class StoreError(ServerError):
    """The persistence collaborator failed"""

    def __init__(self, message: str = "Database error"):
        super().__init__(message, code="STORE_ERROR")


class DuplicateRecordError(ConflictError):
    """A uniqueness constraint rejected the write"""

    def __init__(self, message: str = "Record already exists"):
        super().__init__(message, code="DUPLICATE_RECORD")
