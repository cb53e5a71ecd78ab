"""
Emergency alert endpoints.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from pydantic import BaseModel, field_validator
from typing import Dict, Literal, Optional, Union

from database.models import User, AlertStatus, ALERT_DEPARTMENTS
from auth.dependencies import (
    get_db_session, get_current_user, require_student, require_staff, get_connection_registry
)
from auth.policy import ensure_authorized
from services.alert_service import AlertService
from services.notification_service import ConnectionRegistry, NotificationService
from core.exceptions import NotFoundError
from core.validators import normalize_coordinate, parse_department


router = APIRouter(prefix="/api/alerts", tags=["alerts"])


class AlertCreate(BaseModel):
    """Emergency alert submitted from the student's device."""
    department: Literal["medical", "security"]
    situationData: Dict[str, str] = {}
    latitude: Optional[Union[float, str]] = None
    longitude: Optional[Union[float, str]] = None
    locationName: Optional[str] = None
    locationAccuracy: Optional[Union[float, str]] = None

    @field_validator("latitude")
    @classmethod
    def check_latitude(cls, value):
        return normalize_coordinate(value, 90, "latitude")

    @field_validator("longitude")
    @classmethod
    def check_longitude(cls, value):
        return normalize_coordinate(value, 180, "longitude")

    @field_validator("locationAccuracy")
    @classmethod
    def accuracy_as_text(cls, value):
        return None if value is None else str(value)


class AlertStatusUpdate(BaseModel):
    status: Literal["pending", "acknowledged", "dispatched", "resolved"]
    responseNotes: Optional[str] = None


@router.post("")
async def create_alert(
    data: AlertCreate,
    current_user: User = Depends(require_student),
    db: Session = Depends(get_db_session),
    registry: ConnectionRegistry = Depends(get_connection_registry)
):
    """Raise an alert and notify the department's staff."""
    alert = AlertService.create_alert(
        db,
        {
            "department": data.department,
            "situation_data": data.situationData,
            "latitude": data.latitude,
            "longitude": data.longitude,
            "location_name": data.locationName,
            "location_accuracy": data.locationAccuracy,
        },
        current_user.id
    )
    await NotificationService.notify_new_alert(db, registry, alert)
    return AlertService.to_dict(alert)


@router.get("/my-alerts")
async def my_alerts(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session)
):
    return [AlertService.to_dict(a) for a in AlertService.list_for_user(db, current_user.id)]


@router.get("/department/{department}")
async def department_alerts(
    department: str,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db_session)
):
    """Alerts routed to a department (its staff, or admin)."""
    target = parse_department(department, ALERT_DEPARTMENTS)
    ensure_authorized(current_user, target)
    return [AlertService.to_dict(a) for a in AlertService.list_for_department(db, target)]


@router.get("/{alert_id}")
async def get_alert(
    alert_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session)
):
    alert = AlertService.get_alert(db, alert_id)
    if not alert:
        raise NotFoundError("Alert not found")
    ensure_authorized(current_user, alert)
    return AlertService.to_dict(alert)


@router.patch("/{alert_id}")
async def update_alert(
    alert_id: str,
    data: AlertStatusUpdate,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db_session),
    registry: ConnectionRegistry = Depends(get_connection_registry)
):
    """Move an alert along its lifecycle and tell the student."""
    alert = AlertService.update_alert_status(
        db, alert_id, AlertStatus(data.status), data.responseNotes, current_user
    )
    await NotificationService.notify_alert_updated(registry, alert)
    return AlertService.to_dict(alert)
