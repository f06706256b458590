"""
SQLAlchemy ORM models for users, provider accounts, provider tokens and
first-party sessions.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, relationship


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    user_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(320), unique=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    sessions = relationship("Session", back_populates="user", cascade="all, delete-orphan")


class ProviderAccount(Base):
    __tablename__ = "provider_accounts"

    account_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_email = Column(String(320), unique=True, nullable=False)
    tenant_id = Column(String(128), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow)

    token = relationship(
        "ProviderToken",
        back_populates="account",
        uselist=False,
        cascade="all, delete-orphan",
    )


class ProviderToken(Base):
    __tablename__ = "provider_tokens"

    token_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    account_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("provider_accounts.account_id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    scope = Column(Text, nullable=False, default="")
    updated_at = Column(DateTime(timezone=True), default=_utcnow)

    account = relationship("ProviderAccount", back_populates="token")


class Session(Base):
    __tablename__ = "sessions"

    session_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    token = Column(String(128), unique=True, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    user = relationship("User", back_populates="sessions")

    __table_args__ = (Index("ix_sessions_user_id", "user_id"),)
