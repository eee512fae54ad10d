from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, DateTime, Enum, Index, JSON
from datetime import datetime
from .db import Base
import uuid


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    # bcrypt hash; NULL for accounts created through Google sign-in
    password = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    avatar = Column(String, nullable=True)
    google_id = Column(String, unique=True, index=True, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self) -> dict:
        """Public profile of the user. Never includes the password hash."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "avatar": self.avatar,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


class RevokedToken(Base):
    __tablename__ = "revoked_tokens"
    jti = Column(String, primary_key=True)
    token_type = Column(Enum("access", "refresh", name="token_type"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
    revoked_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class AuthEvent(Base):
    __tablename__ = "auth_events"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    email = Column(String, nullable=False)
    event_type = Column(
        Enum("login_success", "login_failure", "register", "google_login", "token_refresh", "logout",
             name="auth_event_type"),
        nullable=False
    )
    ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False)
    event_metadata = Column(JSON, nullable=True)

    __table_args__ = (
        Index('ix_auth_events_user_id', 'user_id'),
        Index('ix_auth_events_timestamp', 'timestamp'),
        Index('ix_auth_events_event_type', 'event_type'),
        Index('ix_auth_events_user_id_timestamp', 'user_id', 'timestamp'),
    )

    def to_dict(self) -> dict:
        """
        Serialize AuthEvent to dictionary for API responses.

        Returns:
            Dictionary with all event fields, UUIDs as strings,
            datetimes in ISO 8601 format
        """
        return {
            "id": str(self.id),
            "user_id": self.user_id,
            "email": self.email,
            "event_type": self.event_type,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "metadata": self.event_metadata or {}
        }
