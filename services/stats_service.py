"""
Aggregate statistics for the admin dashboard.
"""
from typing import Any, Dict, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session

from database.models import (
    Alert, AlertStatus, ChatSession, ChatSessionStatus, User, UserRole,
    ALERT_DEPARTMENTS, CHAT_DEPARTMENTS
)


class StatsService:
    """Counts recomputed on every request; nothing is cached."""

    @staticmethod
    def average_response_seconds(db: Session) -> Optional[float]:
        """Mean time from alert creation to acknowledgement, in seconds."""
        rows = db.query(Alert.created_at, Alert.acknowledged_at).filter(
            Alert.acknowledged_at.isnot(None)
        ).all()
        if not rows:
            return None
        total = sum((acknowledged_at - created_at).total_seconds() for created_at, acknowledged_at in rows)
        return round(total / len(rows), 1)

    @staticmethod
    def summary(db: Session) -> Dict[str, Any]:
        total_users = db.query(func.count(User.id)).scalar() or 0
        active_users = db.query(func.count(User.id)).filter(User.is_active == True).scalar() or 0
        total_alerts = db.query(func.count(Alert.id)).scalar() or 0
        pending_alerts = db.query(func.count(Alert.id)).filter(
            Alert.status == AlertStatus.PENDING
        ).scalar() or 0
        total_chats = db.query(func.count(ChatSession.id)).scalar() or 0
        active_chats = db.query(func.count(ChatSession.id)).filter(
            ChatSession.status == ChatSessionStatus.ACTIVE
        ).scalar() or 0

        alerts_by_department = {}
        for department in ALERT_DEPARTMENTS:
            alerts_by_department[department.value] = db.query(func.count(Alert.id)).filter(
                Alert.department == department
            ).scalar() or 0

        alerts_by_status = {}
        for status_enum in AlertStatus:
            alerts_by_status[status_enum.value] = db.query(func.count(Alert.id)).filter(
                Alert.status == status_enum
            ).scalar() or 0

        users_by_role = {}
        for role in UserRole:
            users_by_role[role.value] = db.query(func.count(User.id)).filter(
                User.role == role
            ).scalar() or 0

        chats_by_department = {}
        for department in CHAT_DEPARTMENTS:
            chats_by_department[department.value] = db.query(func.count(ChatSession.id)).filter(
                ChatSession.department == department
            ).scalar() or 0

        return {
            "totalUsers": total_users,
            "activeUsers": active_users,
            "totalAlerts": total_alerts,
            "pendingAlerts": pending_alerts,
            "totalChats": total_chats,
            "activeChats": active_chats,
            "alertsByDepartment": alerts_by_department,
            "alertsByStatus": alerts_by_status,
            "usersByRole": users_by_role,
            "chatsByDepartment": chats_by_department,
            "avgResponseTime": StatsService.average_response_seconds(db),
        }
