"""
Authentication service: accounts, credential checks and the session store.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy.orm import Session
from sqlalchemy import func

from database.models import User, UserRole, Department, Session as DBSession
from auth.security import (
    verify_password, get_password_hash, generate_session_key, hash_session_key,
    unsign_session_cookie
)
from core.exceptions import (
    ConflictError, ForbiddenError, NotFoundError, UnauthenticatedError, ValidationFailedError
)
from core.validators import validate_password
from core.logger import logger
import config


class AuthService:
    """Service for authentication operations."""

    @staticmethod
    def create_user(
        db: Session,
        email: str,
        password: str,
        role: UserRole = UserRole.STUDENT,
        department: Department = Department.NONE,
        full_name: Optional[str] = None,
        phone_number: Optional[str] = None,
        is_active: bool = True,
    ) -> User:
        """
        Create a new user.

        Args:
            db: Database session
            email: Email address (unique, case-insensitive)
            password: Plain text password
            role: User role
            department: Department (required for staff)
            full_name: Full name
            phone_number: Optional phone number
            is_active: Whether the account can log in

        Returns:
            Created User

        Raises:
            ValidationFailedError: Password too short/long or staff without department
            ConflictError: Email already registered
        """
        is_valid, error_message = validate_password(password)
        if not is_valid:
            raise ValidationFailedError(error_message)

        if role == UserRole.STAFF and department == Department.NONE:
            raise ValidationFailedError("Staff accounts require a department")

        email = email.strip().lower()
        if AuthService.get_user_by_email(db, email):
            raise ConflictError("Email already registered")

        user = User(
            email=email,
            hashed_password=get_password_hash(password),
            role=role,
            department=department,
            full_name=full_name,
            phone_number=phone_number,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info(f"Created user: {email} (role: {role.value}, department: {department.value})")
        return user

    @staticmethod
    def authenticate_user(db: Session, email: str, password: str) -> User:
        """
        Check credentials and stamp last_login.

        Raises:
            UnauthenticatedError: Unknown email or wrong password
            ForbiddenError: Account is inactive
        """
        user = AuthService.get_user_by_email(db, email)
        if not user or not verify_password(password, user.hashed_password):
            logger.warning(f"Failed login attempt for {email}")
            raise UnauthenticatedError("Invalid email or password")

        if not user.is_active:
            raise ForbiddenError("Account is inactive")

        user.last_login = datetime.utcnow()
        db.commit()
        return user

    @staticmethod
    def create_session(
        db: Session,
        user_id: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> Tuple[str, DBSession]:
        """
        Create a new session for user.

        Returns:
            Tuple of (session_key, DBSession object)
        """
        session_key, session_hash = generate_session_key()
        now = datetime.utcnow()

        session = DBSession(
            user_id=user_id,
            session_hash=session_hash,
            ip_address=ip_address,
            user_agent=user_agent,
            expires_at=now + timedelta(hours=config.SESSION_EXPIRE_HOURS),
            last_activity=now,
            is_active=True
        )
        db.add(session)
        db.commit()
        db.refresh(session)

        logger.info(f"Created session for user: {user_id}")
        return session_key, session

    @staticmethod
    def get_active_session(db: Session, cookie_value: Optional[str]) -> Optional[DBSession]:
        """Resolve a signed session cookie to a live session row."""
        session_key = unsign_session_cookie(cookie_value, config.SECRET_KEY)
        if not session_key:
            return None

        session = db.query(DBSession).filter(
            DBSession.session_hash == hash_session_key(session_key),
            DBSession.is_active == True
        ).first()
        if session is None:
            return None
        if session.expires_at <= datetime.utcnow():
            session.is_active = False
            db.commit()
            return None
        return session

    @staticmethod
    def resolve_session_user(db: Session, cookie_value: Optional[str]) -> Optional[User]:
        """
        Load the user behind a session cookie.

        Used by both the HTTP dependency and the WebSocket handshake.
        Returns None for a missing, invalid or expired session, or when the user
        no longer exists (the orphaned session is revoked).
        """
        session = AuthService.get_active_session(db, cookie_value)
        if session is None:
            return None

        user = AuthService.get_user_by_id(db, session.user_id)
        if user is None:
            session.is_active = False
            db.commit()
            return None

        session.last_activity = datetime.utcnow()
        db.commit()
        return user

    @staticmethod
    def revoke_session(db: Session, cookie_value: Optional[str]) -> bool:
        """Revoke the session behind a cookie."""
        session = AuthService.get_active_session(db, cookie_value)
        if not session:
            return False

        session.is_active = False
        db.commit()
        logger.info(f"Revoked session for user: {session.user_id}")
        return True

    @staticmethod
    def revoke_user_sessions(db: Session, user_id: str) -> int:
        """Revoke every active session of a user. Returns the number revoked."""
        sessions = db.query(DBSession).filter(
            DBSession.user_id == user_id,
            DBSession.is_active == True
        ).all()
        for session in sessions:
            session.is_active = False
        db.commit()
        return len(sessions)

    @staticmethod
    def get_user_by_id(db: Session, user_id: str) -> Optional[User]:
        """Get user by ID."""
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        """Get user by email (case-insensitive)."""
        return db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()

    @staticmethod
    def list_users(db: Session) -> List[User]:
        return db.query(User).order_by(User.created_at.desc()).all()

    @staticmethod
    def list_department_staff(db: Session, department: Department) -> List[User]:
        """Active staff accounts routed to a department."""
        return db.query(User).filter(
            User.role == UserRole.STAFF,
            User.department == department,
            User.is_active == True
        ).all()

    @staticmethod
    def set_user_active(db: Session, user_id: str, is_active: bool, acting_user_id: str) -> User:
        """
        Enable or disable an account. Disabling revokes its sessions.

        Raises:
            ValidationFailedError: Admin tries to disable their own account
            NotFoundError: User does not exist
        """
        if user_id == acting_user_id and not is_active:
            raise ValidationFailedError("Cannot disable your own account")

        user = AuthService.get_user_by_id(db, user_id)
        if not user:
            raise NotFoundError("User not found")

        user.is_active = is_active
        db.commit()
        if not is_active:
            revoked = AuthService.revoke_user_sessions(db, user.id)
            logger.info(f"Disabled user {user.email}; revoked {revoked} session(s)")
        db.refresh(user)
        return user

    @staticmethod
    def delete_user(db: Session, user_id: str, acting_user_id: str) -> Dict[str, Any]:
        """
        Delete an account with its alerts, chats and sessions.

        Returns:
            Snapshot of the deleted user

        Raises:
            ValidationFailedError: Admin tries to delete their own account
            NotFoundError: User does not exist
        """
        if user_id == acting_user_id:
            raise ValidationFailedError("Cannot delete your own account")

        user = AuthService.get_user_by_id(db, user_id)
        if not user:
            raise NotFoundError("User not found")

        snapshot = AuthService.to_dict(user)
        db.delete(user)
        db.commit()
        logger.info(f"Deleted user: {snapshot['email']}")
        return snapshot

    @staticmethod
    def to_dict(user: User) -> Dict[str, Any]:
        """Public representation of a user (never includes the password hash)."""
        return {
            "id": user.id,
            "email": user.email,
            "role": user.role.value,
            "department": user.department.value if user.department else Department.NONE.value,
            "fullName": user.full_name,
            "phoneNumber": user.phone_number,
            "isActive": user.is_active,
            "createdAt": user.created_at.isoformat() if user.created_at else None,
            "lastLogin": user.last_login.isoformat() if user.last_login else None,
        }
