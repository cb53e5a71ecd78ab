"""
Emergency alert service.

Alerts move forward through a fixed status table; ``resolved`` is terminal.
"""
from datetime import datetime
from typing import Any, Dict, FrozenSet, List, Optional
from sqlalchemy.orm import Session

from database.models import Alert, AlertStatus, Department, User, ALERT_DEPARTMENTS
from auth.policy import can_manage_department
from core.exceptions import ForbiddenError, InvalidTransitionError, NotFoundError, ValidationFailedError
from core.logger import logger


# pending may skip acknowledgement and go straight to dispatched
TRANSITIONS: Dict[AlertStatus, FrozenSet[AlertStatus]] = {
    AlertStatus.PENDING: frozenset({AlertStatus.ACKNOWLEDGED, AlertStatus.DISPATCHED}),
    AlertStatus.ACKNOWLEDGED: frozenset({AlertStatus.DISPATCHED}),
    AlertStatus.DISPATCHED: frozenset({AlertStatus.RESOLVED}),
    AlertStatus.RESOLVED: frozenset(),
}


def can_transition(current: AlertStatus, requested: AlertStatus) -> bool:
    return requested in TRANSITIONS.get(current, frozenset())


class AlertService:
    """Service for emergency alerts."""

    @staticmethod
    def create_alert(db: Session, data: Dict[str, Any], requesting_user_id: str) -> Alert:
        """
        Persist a new pending alert owned by the requesting user.

        Args:
            db: Database session
            data: Validated payload (department, situation_data, latitude,
                longitude, location_name, location_accuracy)
            requesting_user_id: Owner of the alert

        Returns:
            Created Alert
        """
        department = Department(data["department"])
        if department not in ALERT_DEPARTMENTS:
            raise ValidationFailedError(f"Alerts cannot be sent to department: {department.value}")

        alert = Alert(
            user_id=requesting_user_id,
            department=department,
            status=AlertStatus.PENDING,
            situation_data=data.get("situation_data") or {},
            latitude=data.get("latitude"),
            longitude=data.get("longitude"),
            location_name=data.get("location_name"),
            location_accuracy=data.get("location_accuracy"),
        )
        db.add(alert)
        db.commit()
        db.refresh(alert)
        logger.info(f"Alert {alert.id} created by {requesting_user_id} for {department.value}")
        return alert

    @staticmethod
    def get_alert(db: Session, alert_id: str) -> Optional[Alert]:
        return db.query(Alert).filter(Alert.id == alert_id).first()

    @staticmethod
    def update_alert_status(
        db: Session,
        alert_id: str,
        new_status: AlertStatus,
        notes: Optional[str],
        acting_user: User
    ) -> Alert:
        """
        Move an alert to a new status.

        Raises:
            NotFoundError: Alert does not exist
            ForbiddenError: Actor is not admin or staff of the alert's department
            InvalidTransitionError: new_status is not reachable from the current status
        """
        alert = AlertService.get_alert(db, alert_id)
        if not alert:
            raise NotFoundError("Alert not found")

        if not can_manage_department(acting_user, alert.department):
            raise ForbiddenError("Forbidden - can only manage your department's alerts")

        current = alert.status
        if not can_transition(current, new_status):
            raise InvalidTransitionError(current.value, new_status.value)

        now = datetime.utcnow()
        alert.status = new_status
        if notes:
            alert.response_notes = notes

        if new_status == AlertStatus.ACKNOWLEDGED:
            alert.acknowledged_at = now
            alert.acknowledged_by = acting_user.id
        elif new_status == AlertStatus.DISPATCHED:
            alert.dispatched_at = now
        elif new_status == AlertStatus.RESOLVED:
            alert.resolved_at = now

        db.commit()
        db.refresh(alert)
        logger.info(f"Alert {alert.id}: {current.value} -> {new_status.value} by {acting_user.id}")
        return alert

    @staticmethod
    def list_for_user(db: Session, user_id: str) -> List[Alert]:
        return db.query(Alert).filter(Alert.user_id == user_id).order_by(Alert.created_at.desc()).all()

    @staticmethod
    def list_for_department(db: Session, department: Department) -> List[Alert]:
        return db.query(Alert).filter(Alert.department == department).order_by(Alert.created_at.desc()).all()

    @staticmethod
    def list_all(db: Session) -> List[Alert]:
        return db.query(Alert).order_by(Alert.created_at.desc()).all()

    @staticmethod
    def to_dict(alert: Alert) -> Dict[str, Any]:
        return {
            "id": alert.id,
            "userId": alert.user_id,
            "department": alert.department.value,
            "status": alert.status.value,
            "latitude": alert.latitude,
            "longitude": alert.longitude,
            "locationName": alert.location_name,
            "locationAccuracy": alert.location_accuracy,
            "situationData": alert.situation_data or {},
            "responseNotes": alert.response_notes,
            "acknowledgedAt": alert.acknowledged_at.isoformat() if alert.acknowledged_at else None,
            "dispatchedAt": alert.dispatched_at.isoformat() if alert.dispatched_at else None,
            "resolvedAt": alert.resolved_at.isoformat() if alert.resolved_at else None,
            "acknowledgedBy": alert.acknowledged_by,
            "createdAt": alert.created_at.isoformat(),
        }
