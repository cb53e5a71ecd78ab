"""
Anonymous support chat endpoints.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from pydantic import BaseModel, field_validator
from typing import Literal, Optional

from database.models import User, CHAT_DEPARTMENTS
from auth.dependencies import (
    get_db_session, get_current_user, require_staff, get_connection_registry
)
from auth.policy import ensure_authorized
from services.chat_service import ChatService
from services.notification_service import ConnectionRegistry, NotificationService
from core.validators import parse_department


router = APIRouter(prefix="/api/chats", tags=["chats"])


class ChatSessionCreate(BaseModel):
    department: Literal["medical", "security", "guidance"]


class MessageCreate(BaseModel):
    sessionId: str
    content: str
    fileUrl: Optional[str] = None
    fileName: Optional[str] = None

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Message content cannot be empty")
        return value


@router.post("/sessions")
async def create_session(
    data: ChatSessionCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session)
):
    """Open a chat with a department under a fresh anonymous handle."""
    session = ChatService.create_session(db, data.department, current_user.id)
    return ChatService.session_to_dict(session, current_user)


@router.get("/my-sessions")
async def my_sessions(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session)
):
    return [ChatService.session_to_dict(s, current_user) for s in ChatService.list_for_user(db, current_user.id)]


@router.get("/sessions/{session_id}")
async def get_session(
    session_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session)
):
    session = ChatService.get_accessible_session(db, session_id, current_user)
    return ChatService.session_to_dict(session, current_user)


@router.patch("/sessions/{session_id}/close")
async def close_session(
    session_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session)
):
    session = ChatService.close_session(db, session_id, current_user)
    return ChatService.session_to_dict(session, current_user)


@router.get("/department/{department}")
async def department_sessions(
    department: str,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db_session)
):
    """Chats routed to a department. Owner ids are withheld from staff."""
    target = parse_department(department, CHAT_DEPARTMENTS)
    ensure_authorized(current_user, target)
    return [ChatService.session_to_dict(s, current_user) for s in ChatService.list_for_department(db, target)]


@router.post("/messages")
async def post_message(
    data: MessageCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session),
    registry: ConnectionRegistry = Depends(get_connection_registry)
):
    """Send a message and push it to the other participants."""
    message = ChatService.post_message(
        db, data.sessionId, data.content, current_user,
        file_url=data.fileUrl, file_name=data.fileName
    )
    session = message.session
    await NotificationService.notify_chat_message(db, registry, session, message)
    return ChatService.message_to_dict(message, session, current_user)


@router.get("/messages/{session_id}")
async def list_messages(
    session_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session)
):
    messages = ChatService.list_messages(db, session_id, current_user)
    session = ChatService.get_session(db, session_id)
    return [ChatService.message_to_dict(m, session, current_user) for m in messages]


@router.post("/messages/{session_id}/read")
async def mark_read(
    session_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session)
):
    return {"updated": ChatService.mark_read(db, session_id, current_user)}
