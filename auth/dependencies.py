"""
Authentication dependencies for FastAPI.
"""
from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from database.models import User
from services.auth_service import AuthService
from core.exceptions import ForbiddenError, UnauthenticatedError
import config


def get_db_session():
    """Get database session."""
    if not config.db:
        raise HTTPException(status_code=503, detail="Database not initialized")
    with config.db.get_session() as session:
        yield session


async def get_current_user(
    request: Request,
    db: Session = Depends(get_db_session)
) -> User:
    """
    Get current authenticated user from the session cookie.

    Args:
        request: Incoming request (cookie source)
        db: Database session

    Returns:
        Current user

    Raises:
        UnauthenticatedError: Missing, invalid or expired session
        ForbiddenError: Account is inactive
    """
    cookie_value = request.cookies.get(config.SESSION_COOKIE_NAME)
    user = AuthService.resolve_session_user(db, cookie_value)
    if user is None:
        raise UnauthenticatedError()

    if not user.is_active:
        raise ForbiddenError("User account is inactive")

    request.state.user = user
    return user


def require_role(allowed_roles: list[str]):
    """
    Dependency factory for role-based access control.

    Args:
        allowed_roles: List of allowed roles

    Returns:
        Dependency function
    """
    async def role_checker(
        current_user: User = Depends(get_current_user)
    ) -> User:
        if current_user.role.value not in allowed_roles:
            raise ForbiddenError(f"Access denied. Required roles: {', '.join(allowed_roles)}")
        return current_user

    return role_checker


require_student = require_role(["student"])
require_staff = require_role(["staff", "admin"])
require_admin = require_role(["admin"])


def get_connection_registry(request: Request):
    """Live WebSocket registry created at startup."""
    return request.app.state.connections
