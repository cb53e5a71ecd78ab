"""
Anonymous support chat service.

Students open a session with one department under a random handle. Staff of
that department answer without ever learning the student's account id.
"""
import secrets
import string
from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from database.models import (
    ChatSession, ChatSessionStatus, Department, Message, SenderRole, User, UserRole,
    CHAT_DEPARTMENTS
)
from auth.policy import ensure_authorized, is_admin
from core.exceptions import ConflictError, NotFoundError, ValidationFailedError
from core.logger import logger
import config

_HANDLE_ALPHABET = string.ascii_uppercase + string.digits


def generate_anonymous_handle() -> str:
    """Random ``User#XXXXXX`` handle."""
    suffix = "".join(secrets.choice(_HANDLE_ALPHABET) for _ in range(config.ANONYMOUS_HANDLE_LENGTH))
    return f"{config.ANONYMOUS_HANDLE_PREFIX}{suffix}"


def _can_see_owner(session: ChatSession, viewer: Optional[User]) -> bool:
    return viewer is not None and (viewer.id == session.user_id or is_admin(viewer))


class ChatService:
    """Service for anonymous chat sessions and their messages."""

    @staticmethod
    def create_session(db: Session, department: Department, requesting_user_id: str) -> ChatSession:
        """
        Open an active chat session under a fresh anonymous handle.

        Handles are not checked beforehand; a collision surfaces as an
        IntegrityError on the unique column and a new handle is drawn.

        Raises:
            ValidationFailedError: Department does not take chats
            ConflictError: Every attempt collided
        """
        department = Department(department)
        if department not in CHAT_DEPARTMENTS:
            raise ValidationFailedError(f"Chats cannot be opened with department: {department.value}")

        for attempt in range(1, config.ANONYMOUS_HANDLE_ATTEMPTS + 1):
            session = ChatSession(
                user_id=requesting_user_id,
                department=department,
                anonymous_id=generate_anonymous_handle(),
                status=ChatSessionStatus.ACTIVE,
            )
            db.add(session)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                logger.warning(
                    f"Anonymous handle collision on attempt {attempt}/{config.ANONYMOUS_HANDLE_ATTEMPTS}"
                )
                continue
            db.refresh(session)
            logger.info(f"Chat session {session.id} opened with {department.value} as {session.anonymous_id}")
            return session

        raise ConflictError("Could not allocate an anonymous handle, please retry")

    @staticmethod
    def get_session(db: Session, session_id: str) -> Optional[ChatSession]:
        return db.query(ChatSession).filter(ChatSession.id == session_id).first()

    @staticmethod
    def get_accessible_session(db: Session, session_id: str, user: User) -> ChatSession:
        """Load a session the user may read or post in."""
        session = ChatService.get_session(db, session_id)
        if not session:
            raise NotFoundError("Chat session not found")
        ensure_authorized(user, session, "Forbidden - not a participant of this chat")
        return session

    @staticmethod
    def list_for_user(db: Session, user_id: str) -> List[ChatSession]:
        return db.query(ChatSession).filter(
            ChatSession.user_id == user_id
        ).order_by(ChatSession.created_at.desc()).all()

    @staticmethod
    def list_for_department(db: Session, department: Department) -> List[ChatSession]:
        return db.query(ChatSession).filter(
            ChatSession.department == department
        ).order_by(ChatSession.created_at.desc()).all()

    @staticmethod
    def list_all(db: Session) -> List[ChatSession]:
        return db.query(ChatSession).order_by(ChatSession.created_at.desc()).all()

    @staticmethod
    def post_message(
        db: Session,
        session_id: str,
        content: str,
        sender: User,
        file_url: Optional[str] = None,
        file_name: Optional[str] = None
    ) -> Message:
        """
        Append a message to a chat session.

        The message timestamp and the session's ``last_message_at`` are the
        same instant.

        Raises:
            NotFoundError: Session does not exist
            ForbiddenError: Sender is not the owner, department staff or admin
            ValidationFailedError: Session is closed
        """
        session = ChatService.get_accessible_session(db, session_id, sender)
        if session.status == ChatSessionStatus.CLOSED:
            raise ValidationFailedError("Chat session is closed")

        now = datetime.utcnow()
        message = Message(
            session_id=session.id,
            sender_id=sender.id,
            sender_role=SenderRole.STUDENT if sender.role == UserRole.STUDENT else SenderRole.STAFF,
            content=content,
            file_url=file_url,
            file_name=file_name,
            created_at=now,
        )
        session.last_message_at = now
        db.add(message)
        db.commit()
        db.refresh(message)
        return message

    @staticmethod
    def list_messages(db: Session, session_id: str, requesting_user: User) -> List[Message]:
        session = ChatService.get_accessible_session(db, session_id, requesting_user)
        return db.query(Message).filter(
            Message.session_id == session.id
        ).order_by(Message.created_at.asc()).all()

    @staticmethod
    def close_session(db: Session, session_id: str, user: User) -> ChatSession:
        """Close a session. Closing an already closed session is a no-op."""
        session = ChatService.get_accessible_session(db, session_id, user)
        if session.status != ChatSessionStatus.CLOSED:
            session.status = ChatSessionStatus.CLOSED
            session.closed_at = datetime.utcnow()
            db.commit()
            db.refresh(session)
            logger.info(f"Chat session {session.id} closed by {user.id}")
        return session

    @staticmethod
    def mark_read(db: Session, session_id: str, reader: User) -> int:
        """
        Mark the other side's unread messages as read. Returns the count.

        The sides are the session owner and everyone answering for the
        department, whatever their role.
        """
        session = ChatService.get_accessible_session(db, session_id, reader)
        if reader.id == session.user_id:
            from_other_side = Message.sender_id != session.user_id
        else:
            from_other_side = Message.sender_id == session.user_id
        messages = db.query(Message).filter(
            Message.session_id == session.id,
            from_other_side,
            Message.is_read == False
        ).all()
        for message in messages:
            message.is_read = True
        db.commit()
        return len(messages)

    @staticmethod
    def session_to_dict(session: ChatSession, viewer: Optional[User]) -> Dict[str, Any]:
        data = {
            "id": session.id,
            "department": session.department.value,
            "anonymousId": session.anonymous_id,
            "status": session.status.value,
            "lastMessageAt": session.last_message_at.isoformat() if session.last_message_at else None,
            "createdAt": session.created_at.isoformat(),
            "closedAt": session.closed_at.isoformat() if session.closed_at else None,
        }
        if _can_see_owner(session, viewer):
            data["userId"] = session.user_id
        return data

    @staticmethod
    def message_to_dict(message: Message, session: ChatSession, viewer: Optional[User]) -> Dict[str, Any]:
        hide_sender = message.sender_role == SenderRole.STUDENT and not _can_see_owner(session, viewer)
        return {
            "id": message.id,
            "sessionId": message.session_id,
            "senderId": None if hide_sender else message.sender_id,
            "senderRole": message.sender_role.value,
            "content": message.content,
            "fileUrl": message.file_url,
            "fileName": message.file_name,
            "isRead": message.is_read,
            "createdAt": message.created_at.isoformat(),
        }
