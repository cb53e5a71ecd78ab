"""
Database models for the campus safety service.
"""
from datetime import datetime
import enum
import uuid

from sqlalchemy import (
    Column, String, Boolean, DateTime, Text,
    ForeignKey, JSON, Index, TypeDecorator
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def generate_uuid() -> str:
    return str(uuid.uuid4())


# ============================================================================
# Custom Type Decorator for Enum Values
# ============================================================================

class EnumValue(TypeDecorator):
    """Type decorator to ensure enum values (not names) are stored."""
    impl = String
    cache_ok = True

    def __init__(self, enum_class, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.enum_class = enum_class

    def process_bind_param(self, value, dialect):
        """Convert enum to its value when writing to database."""
        if value is None:
            return None
        if isinstance(value, enum.Enum):
            return value.value
        return value

    def process_result_value(self, value, dialect):
        """Convert database value back to enum when reading."""
        if value is None:
            return None
        if isinstance(value, str):
            try:
                return self.enum_class(value)
            except ValueError:
                return value
        return value


# ============================================================================
# Enums - Must be defined before models that use them
# ============================================================================

class UserRole(str, enum.Enum):
    """User roles for authorization."""
    STUDENT = "student"
    STAFF = "staff"
    ADMIN = "admin"


class Department(str, enum.Enum):
    """Organizational routing targets for staff."""
    MEDICAL = "medical"
    SECURITY = "security"
    GUIDANCE = "guidance"
    NONE = "none"


# Departments that can receive emergency alerts / anonymous chats
ALERT_DEPARTMENTS = (Department.MEDICAL, Department.SECURITY)
CHAT_DEPARTMENTS = (Department.MEDICAL, Department.SECURITY, Department.GUIDANCE)


class AlertStatus(str, enum.Enum):
    """Alert lifecycle status."""
    PENDING = "pending"
    ACKNOWLEDGED = "acknowledged"
    DISPATCHED = "dispatched"
    RESOLVED = "resolved"


class ChatSessionStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    CLOSED = "closed"


class SenderRole(str, enum.Enum):
    STUDENT = "student"
    STAFF = "staff"


# ============================================================================
# Models
# ============================================================================

class User(Base):
    """Student, staff or admin account."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(EnumValue(UserRole, 20), default=UserRole.STUDENT, nullable=False)
    department = Column(EnumValue(Department, 20), default=Department.NONE, nullable=False)
    full_name = Column(String(255), nullable=True)
    phone_number = Column(String(50), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_login = Column(DateTime, nullable=True)

    # Relationships
    sessions = relationship("Session", back_populates="user", cascade="all, delete-orphan")
    alerts = relationship("Alert", back_populates="user", foreign_keys="Alert.user_id", cascade="all, delete-orphan")
    chat_sessions = relationship("ChatSession", back_populates="user", cascade="all, delete-orphan")
    sent_messages = relationship("Message", back_populates="sender", cascade="all, delete")

    __table_args__ = (
        Index('idx_user_role_department', 'role', 'department'),
    )


class Session(Base):
    """Server-side login session referenced by the signed session cookie."""
    __tablename__ = "sessions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    session_hash = Column(String(64), unique=True, index=True, nullable=False)  # sha256 of the session key
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
    last_activity = Column(DateTime, default=datetime.utcnow, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="sessions")

    __table_args__ = (
        Index('idx_session_user', 'user_id'),
    )


class Alert(Base):
    """Emergency report raised by a student for one department."""
    __tablename__ = "alerts"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    department = Column(EnumValue(Department, 20), nullable=False)
    status = Column(EnumValue(AlertStatus, 20), default=AlertStatus.PENDING, nullable=False)
    latitude = Column(String(32), nullable=True)
    longitude = Column(String(32), nullable=True)
    location_name = Column(String(255), nullable=True)
    location_accuracy = Column(String(32), nullable=True)
    situation_data = Column(JSON, nullable=True)  # question -> answer
    response_notes = Column(Text, nullable=True)
    acknowledged_at = Column(DateTime, nullable=True)
    dispatched_at = Column(DateTime, nullable=True)
    resolved_at = Column(DateTime, nullable=True)
    acknowledged_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="alerts", foreign_keys=[user_id])
    acknowledger = relationship("User", foreign_keys=[acknowledged_by])

    __table_args__ = (
        Index('idx_alert_user', 'user_id'),
        Index('idx_alert_department', 'department'),
        Index('idx_alert_status', 'status'),
        Index('idx_alert_created', 'created_at'),
    )


class ChatSession(Base):
    """Anonymous conversation between one student and one department."""
    __tablename__ = "chat_sessions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    department = Column(EnumValue(Department, 20), nullable=False)
    anonymous_id = Column(String(50), unique=True, nullable=False)
    status = Column(EnumValue(ChatSessionStatus, 20), default=ChatSessionStatus.ACTIVE, nullable=False)
    last_message_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    closed_at = Column(DateTime, nullable=True)

    user = relationship("User", back_populates="chat_sessions")
    messages = relationship(
        "Message",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="Message.created_at"
    )

    __table_args__ = (
        Index('idx_chat_user', 'user_id'),
        Index('idx_chat_department', 'department'),
    )


class Message(Base):
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    session_id = Column(String(36), ForeignKey("chat_sessions.id", ondelete="CASCADE"), nullable=False)
    sender_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    sender_role = Column(EnumValue(SenderRole, 20), nullable=False)
    content = Column(Text, nullable=False)
    file_url = Column(String(512), nullable=True)
    file_name = Column(String(255), nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    session = relationship("ChatSession", back_populates="messages")
    sender = relationship("User", back_populates="sent_messages")

    __table_args__ = (
        Index('idx_message_session_created', 'session_id', 'created_at'),
    )


class Location(Base):
    """Campus building reference data."""
    __tablename__ = "locations"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    building_name = Column(String(255), nullable=False)
    building_code = Column(String(50), nullable=True)
    latitude = Column(String(32), nullable=True)
    longitude = Column(String(32), nullable=True)
    address = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class AuditLog(Base):
    """Audit log for administrative actions."""
    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    action = Column(String(100), nullable=False)  # e.g., "create_user", "delete_user", "login"
    target_type = Column(String(50), nullable=True)  # e.g., "user", "location"
    target_id = Column(String(36), nullable=True)
    ip_address = Column(String(45), nullable=True)  # IPv6 compatible
    user_agent = Column(String(500), nullable=True)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    __table_args__ = (
        Index('idx_audit_user', 'user_id'),
        Index('idx_audit_action', 'action'),
    )
