"""SQLAlchemy models for the admin authentication subsystem."""

from __future__ import annotations

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from ..db import Base
from ..db_models import TimestampMixin


class AdminUserRecord(TimestampMixin, Base):
    """Local record of an osu! account that passed the admin allow-list."""

    __tablename__ = "admin_users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    provider_user_id = Column(BigInteger, unique=True, nullable=False, index=True)
    username = Column(String(255), nullable=False)
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    sessions = relationship("AdminSessionRecord", back_populates="admin_user", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<AdminUserRecord(id={self.id}, provider_user_id={self.provider_user_id})>"


class AdminSessionRecord(Base):
    """Server-side admin session, keyed by the HMAC of the cookie value."""

    __tablename__ = "admin_sessions"

    session_hash = Column(String(128), primary_key=True)
    admin_user_id = Column(Integer, ForeignKey("admin_users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    admin_user = relationship("AdminUserRecord", back_populates="sessions")


Index("ix_admin_sessions_expiry", AdminSessionRecord.expires_at)
