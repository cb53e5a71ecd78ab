"""
Real-time notification channel.

Connection URL: WS /ws (the session cookie is sent with the handshake)

The server only pushes events (new_alert, alert_updated, chat_message);
frames sent by the client are read and discarded.
"""
from fastapi import APIRouter, WebSocket, status

from services.auth_service import AuthService
from core.logger import logger
import config


router = APIRouter(tags=["realtime"])


def _authenticate(websocket: WebSocket):
    """User id behind the handshake cookie, or None."""
    if not config.db:
        return None
    cookie_value = websocket.cookies.get(config.SESSION_COOKIE_NAME)
    if not cookie_value:
        return None
    with config.db.get_session() as db:
        user = AuthService.resolve_session_user(db, cookie_value)
        if user is None or not user.is_active:
            return None
        return user.id


@router.websocket(config.WEBSOCKET_PATH)
async def notifications_websocket(websocket: WebSocket):
    user_id = _authenticate(websocket)
    if user_id is None:
        client = websocket.client.host if websocket.client else "unknown"
        logger.warning(f"Rejected WebSocket handshake from {client}: no valid session")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    registry = websocket.app.state.connections
    await websocket.accept()
    registry.register(user_id, websocket)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                logger.debug(f"WebSocket for user {user_id} disconnected (code {message.get('code')})")
                break
    finally:
        registry.unregister(user_id, websocket)
