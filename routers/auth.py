"""
Authentication endpoints: cookie-based login, campus self-registration, logout.
"""
from datetime import datetime, timedelta
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session
from pydantic import BaseModel, EmailStr
from typing import Optional

from database.models import User, UserRole, Department
from auth.dependencies import get_db_session, get_current_user
from auth.security import sign_session_cookie
from services.auth_service import AuthService
from services.audit_service import AuditService
from core.exceptions import CampusSafetyError, ConflictError, ValidationFailedError
from core.validators import is_campus_email
from core.logger import logger
import config


router = APIRouter(prefix="/api/auth", tags=["authentication"])


# Request Models
class LoginRequest(BaseModel):
    """Login request."""
    email: EmailStr
    password: str


class RegisterRequest(BaseModel):
    """Student self-registration request."""
    email: EmailStr
    password: str
    fullName: str
    phoneNumber: Optional[str] = None


def _start_session(db: Session, request: Request, response: Response, user: User) -> None:
    """Persist a session row and hand the signed key to the browser."""
    session_key, _ = AuthService.create_session(
        db=db,
        user_id=user.id,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent")
    )
    max_age = config.SESSION_EXPIRE_HOURS * 3600
    response.set_cookie(
        key=config.SESSION_COOKIE_NAME,
        value=sign_session_cookie(session_key, config.SECRET_KEY, timedelta(seconds=max_age)),
        max_age=max_age,
        httponly=True,
        secure=config.SESSION_COOKIE_SECURE,
        samesite="lax",
        path="/",
    )


@router.post("/login")
async def login(
    credentials: LoginRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db_session)
):
    """
    Login with email + password.
    Sets the session cookie and returns the user.
    """
    try:
        user = AuthService.authenticate_user(db, credentials.email, credentials.password)
    except CampusSafetyError as e:
        AuditService.log_from_request(
            db=db,
            request=request,
            action="login_failed",
            target_type="user",
            details={"email": credentials.email, "reason": e.message}
        )
        raise

    _start_session(db, request, response, user)
    AuditService.log_from_request(
        db=db,
        request=request,
        action="login",
        user_id=user.id,
        target_type="user",
        target_id=user.id
    )
    return {"user": AuthService.to_dict(user)}


@router.post("/register")
async def register(
    data: RegisterRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db_session)
):
    """
    Create a student account with a campus email and log it in.
    """
    if not is_campus_email(data.email):
        raise ValidationFailedError(f"Must use a valid @{config.CAMPUS_EMAIL_DOMAIN} email address")

    try:
        user = AuthService.create_user(
            db=db,
            email=data.email,
            password=data.password,
            role=UserRole.STUDENT,
            department=Department.NONE,
            full_name=data.fullName,
            phone_number=data.phoneNumber,
        )
    except ConflictError as e:
        raise ValidationFailedError(e.message)

    user.last_login = datetime.utcnow()
    db.commit()
    _start_session(db, request, response, user)
    AuditService.log_from_request(
        db=db,
        request=request,
        action="register",
        user_id=user.id,
        target_type="user",
        target_id=user.id
    )
    return {"user": AuthService.to_dict(user)}


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    db: Session = Depends(get_db_session)
):
    """
    Logout. Revokes the presented session, if any, and clears the cookie.
    """
    cookie_value = request.cookies.get(config.SESSION_COOKIE_NAME)
    if cookie_value and not AuthService.revoke_session(db, cookie_value):
        logger.info("Logout with an unknown or expired session")
    response.delete_cookie(config.SESSION_COOKIE_NAME, path="/")
    return {"message": "Logged out successfully"}


@router.get("/me")
async def me(current_user: User = Depends(get_current_user)):
    """Currently logged-in user."""
    return {"user": AuthService.to_dict(current_user)}
