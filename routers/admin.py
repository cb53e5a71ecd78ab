"""
Administration APIs: statistics, account management, system-wide listings.
Admin only.
"""
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, EmailStr, field_validator
from typing import Literal, Optional, Union

from database.models import User, UserRole, Department
from auth.dependencies import get_db_session, require_admin
from services.auth_service import AuthService
from services.audit_service import AuditService
from services.alert_service import AlertService
from services.chat_service import ChatService
from services.location_service import LocationService
from services.stats_service import StatsService
from core.validators import normalize_coordinate
from core.logger import logger


router = APIRouter(prefix="/api/admin", tags=["admin"])


# Request Models
class UserCreate(BaseModel):
    """Create user request."""
    email: EmailStr
    password: str
    role: Literal["student", "staff", "admin"] = "student"
    department: Literal["medical", "security", "guidance", "none"] = "none"
    fullName: Optional[str] = None
    phoneNumber: Optional[str] = None
    isActive: bool = True


class UserUpdate(BaseModel):
    """Update user request."""
    isActive: bool


class LocationCreate(BaseModel):
    buildingName: str
    buildingCode: Optional[str] = None
    latitude: Optional[Union[float, str]] = None
    longitude: Optional[Union[float, str]] = None
    address: Optional[str] = None

    @field_validator("latitude")
    @classmethod
    def check_latitude(cls, value):
        return normalize_coordinate(value, 90, "latitude")

    @field_validator("longitude")
    @classmethod
    def check_longitude(cls, value):
        return normalize_coordinate(value, 180, "longitude")


@router.get("/stats")
async def get_stats(
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db_session)
):
    """System-wide counts for the admin dashboard."""
    return StatsService.summary(db)


@router.get("/users")
async def list_users(
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db_session)
):
    return [AuthService.to_dict(u) for u in AuthService.list_users(db)]


@router.post("/users", status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    request: Request,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db_session)
):
    """
    Create an account of any role.
    Staff accounts need a department.
    """
    user = AuthService.create_user(
        db=db,
        email=user_data.email,
        password=user_data.password,
        role=UserRole(user_data.role),
        department=Department(user_data.department),
        full_name=user_data.fullName,
        phone_number=user_data.phoneNumber,
        is_active=user_data.isActive,
    )

    AuditService.log_from_request(
        db=db,
        request=request,
        action="user_create",
        user_id=current_user.id,
        target_type="user",
        target_id=user.id,
        details={"role": user.role.value, "department": user.department.value}
    )
    return AuthService.to_dict(user)


@router.patch("/users/{user_id}")
async def update_user(
    user_id: str,
    user_data: UserUpdate,
    request: Request,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db_session)
):
    """Enable or disable an account."""
    user = AuthService.set_user_active(db, user_id, user_data.isActive, current_user.id)

    AuditService.log_from_request(
        db=db,
        request=request,
        action="user_enable" if user.is_active else "user_disable",
        user_id=current_user.id,
        target_type="user",
        target_id=user.id
    )
    return AuthService.to_dict(user)


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: str,
    request: Request,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db_session)
):
    """
    Permanently delete an account with its alerts and chats.
    Admins cannot delete themselves.
    """
    deleted = AuthService.delete_user(db, user_id, current_user.id)

    AuditService.log_from_request(
        db=db,
        request=request,
        action="user_delete",
        user_id=current_user.id,
        target_type="user",
        target_id=user_id,
        details={"email": deleted["email"], "role": deleted["role"]}
    )
    logger.info(f"User {deleted['email']} deleted by {current_user.email}")
    return {"message": "User deleted successfully", "user": deleted}


@router.get("/alerts")
async def list_alerts(
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db_session)
):
    return [AlertService.to_dict(a) for a in AlertService.list_all(db)]


@router.get("/chats")
async def list_chats(
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db_session)
):
    return [ChatService.session_to_dict(s, current_user) for s in ChatService.list_all(db)]


@router.get("/audit-logs")
async def list_audit_logs(
    limit: int = Query(100, ge=1, le=1000),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db_session)
):
    return [AuditService.to_dict(log) for log in AuditService.list_logs(db, limit)]


@router.post("/locations", status_code=status.HTTP_201_CREATED)
async def create_location(
    data: LocationCreate,
    request: Request,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db_session)
):
    location = LocationService.create_location(
        db,
        building_name=data.buildingName,
        building_code=data.buildingCode,
        latitude=data.latitude,
        longitude=data.longitude,
        address=data.address,
    )

    AuditService.log_from_request(
        db=db,
        request=request,
        action="location_create",
        user_id=current_user.id,
        target_type="location",
        target_id=location.id
    )
    return LocationService.to_dict(location)
