"""
Real-time notification fan-out.

``ConnectionRegistry`` maps user ids to their open WebSocket connections. It is
created once in the application lifespan and only touched from the event loop,
so it carries no lock. Delivery is at-most-once; nothing is queued for users
who are offline.
"""
import json
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from sqlalchemy.orm import Session
from starlette.websockets import WebSocket, WebSocketState

from database.models import Alert, ChatSession, Message, User
from services.alert_service import AlertService
from services.auth_service import AuthService
from services.chat_service import ChatService
from core.logger import logger


class EventType(str, Enum):
    """WebSocket event types"""
    NEW_ALERT = "new_alert"
    ALERT_UPDATED = "alert_updated"
    CHAT_MESSAGE = "chat_message"


class ConnectionRegistry:
    """Open WebSocket connections per authenticated user."""

    def __init__(self):
        # user_id -> connections
        self._connections: Dict[str, Set[WebSocket]] = {}

    def register(self, user_id: str, connection: WebSocket) -> None:
        """Track an accepted, already authenticated connection."""
        self._connections.setdefault(user_id, set()).add(connection)
        logger.info(f"WebSocket registered for user {user_id} ({self.connection_count(user_id)} open)")

    def unregister(self, user_id: str, connection: WebSocket) -> None:
        connections = self._connections.get(user_id)
        if not connections:
            return
        connections.discard(connection)
        if not connections:
            del self._connections[user_id]
        logger.info(f"WebSocket unregistered for user {user_id}")

    def connected_users(self) -> List[str]:
        return list(self._connections)

    def connection_count(self, user_id: Optional[str] = None) -> int:
        if user_id is not None:
            return len(self._connections.get(user_id, ()))
        return sum(len(connections) for connections in self._connections.values())

    @staticmethod
    def _is_open(connection: WebSocket) -> bool:
        return (
            connection.client_state == WebSocketState.CONNECTED
            and connection.application_state == WebSocketState.CONNECTED
        )

    async def push_to_user(self, user_id: str, event: Dict[str, Any]) -> int:
        """
        Send an event to every open connection of a user.

        Returns:
            Number of connections the event was written to
        """
        connections = self._connections.get(user_id)
        if not connections:
            return 0

        payload = json.dumps(event, default=str)
        delivered = 0
        # copy: a disconnect may unregister while we await a send
        for connection in list(connections):
            if not self._is_open(connection):
                continue
            try:
                await connection.send_text(payload)
                delivered += 1
            except Exception as e:
                logger.warning(f"WebSocket send to user {user_id} failed, dropping connection: {e}")
                self.unregister(user_id, connection)
        return delivered

    async def push_to_all(self, event: Dict[str, Any]) -> int:
        delivered = 0
        for user_id in self.connected_users():
            delivered += await self.push_to_user(user_id, event)
        return delivered

    async def close_all(self) -> None:
        """Close every open connection (application shutdown)."""
        for user_id, connections in list(self._connections.items()):
            for connection in list(connections):
                if self._is_open(connection):
                    try:
                        await connection.close()
                    except Exception as e:
                        logger.warning(f"Closing WebSocket for user {user_id} failed: {e}")
        self._connections.clear()


class NotificationService:
    """
    Resolves recipients and builds event payloads.

    Failures are logged and never propagate to the request that triggered the
    notification.
    """

    @staticmethod
    async def notify_new_alert(db: Session, registry: ConnectionRegistry, alert: Alert) -> int:
        """Tell every active staff member of the alert's department."""
        try:
            event = {
                "type": EventType.NEW_ALERT.value,
                "alertId": alert.id,
                "department": alert.department.value,
                "alert": AlertService.to_dict(alert),
            }
            delivered = 0
            for staff in AuthService.list_department_staff(db, alert.department):
                delivered += await registry.push_to_user(staff.id, event)
            return delivered
        except Exception as e:
            logger.error(f"new_alert notification for alert {alert.id} failed: {e}", exc_info=True)
            return 0

    @staticmethod
    async def notify_alert_updated(registry: ConnectionRegistry, alert: Alert) -> int:
        """Tell the student who raised the alert about its new status."""
        try:
            event = {
                "type": EventType.ALERT_UPDATED.value,
                "alertId": alert.id,
                "status": alert.status.value,
            }
            return await registry.push_to_user(alert.user_id, event)
        except Exception as e:
            logger.error(f"alert_updated notification for alert {alert.id} failed: {e}", exc_info=True)
            return 0

    @staticmethod
    async def notify_chat_message(
        db: Session,
        registry: ConnectionRegistry,
        session: ChatSession,
        message: Message
    ) -> int:
        """
        Send a new message to the session owner and the department's staff.

        Each recipient gets its own payload so staff never see the owner's id.
        """
        try:
            recipients: Dict[str, User] = {}
            owner = AuthService.get_user_by_id(db, session.user_id)
            if owner is not None:
                recipients[owner.id] = owner
            for staff in AuthService.list_department_staff(db, session.department):
                recipients[staff.id] = staff

            delivered = 0
            for recipient in recipients.values():
                if not registry.connection_count(recipient.id):
                    continue
                event = {
                    "type": EventType.CHAT_MESSAGE.value,
                    "sessionId": session.id,
                    "message": ChatService.message_to_dict(message, session, recipient),
                }
                delivered += await registry.push_to_user(recipient.id, event)
            return delivered
        except Exception as e:
            logger.error(f"chat_message notification for session {session.id} failed: {e}", exc_info=True)
            return 0
