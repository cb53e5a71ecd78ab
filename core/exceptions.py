"""
Domain exceptions for the campus safety service.

Services raise these instead of HTTPException so the same rules can be used
outside a request (scripts, tests). The application registers a single
handler that turns them into ``{"detail": message}`` responses.

Usage:
    from core.exceptions import NotFoundError

    if not alert:
        raise NotFoundError("Alert not found")
"""
from typing import Any, Dict, Optional


class CampusSafetyError(Exception):
    """Base exception for all campus safety errors."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message}


class UnauthenticatedError(CampusSafetyError):
    """No valid session for the request."""

    status_code = 401
    code = "UNAUTHENTICATED"

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class ForbiddenError(CampusSafetyError):
    """Role, department or ownership mismatch."""

    status_code = 403
    code = "FORBIDDEN"

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)


class NotFoundError(CampusSafetyError):
    status_code = 404
    code = "NOT_FOUND"


class ValidationFailedError(CampusSafetyError):
    """Malformed payload or a request the domain rules reject outright."""

    status_code = 400
    code = "VALIDATION_FAILED"


class InvalidTransitionError(CampusSafetyError):
    """Requested alert status is not reachable from the current one."""

    status_code = 400
    code = "INVALID_TRANSITION"

    def __init__(self, current: str, requested: str):
        super().__init__(
            f"Cannot transition from {current} to {requested}",
            details={"current": current, "requested": requested},
        )


class ConflictError(CampusSafetyError):
    status_code = 409
    code = "CONFLICT"
