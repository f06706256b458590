"""
First-party sessions — issue, validate and revoke opaque session tokens.

A session is valid while ``now < expires_at``; expiry is checked lazily on
validation, so no background sweep is needed.  Revocation deletes the row
and is terminal.
"""

from __future__ import annotations

import logging
import secrets
import uuid
from datetime import timedelta
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from auth.errors import InvalidSession, MissingToken, SessionExpired
from database.helpers import as_utc, persistence_guard, utcnow
from database.models import Session, User
from utils.schemas import AuthenticatedUser, IssuedSession

logger = logging.getLogger(__name__)

_TOKEN_BYTES = 32
DEFAULT_SESSION_TTL = timedelta(days=7)


def extract_session_token(
    authorization: Optional[str],
    cookie_value: Optional[str],
) -> Optional[str]:
    """
    Pick the presented session token.

    ``Authorization: Bearer <token>`` wins over the session cookie when
    both are present.
    """
    if authorization and authorization.startswith("Bearer "):
        bearer = authorization[len("Bearer "):].strip()
        if bearer:
            return bearer
    return cookie_value or None


class SessionManager:
    def __init__(self, ttl: timedelta = DEFAULT_SESSION_TTL) -> None:
        if ttl <= timedelta(0):
            raise ValueError("session TTL must be positive")
        self.ttl = ttl

    async def issue(self, session: AsyncSession, user_id: uuid.UUID) -> IssuedSession:
        """Create a session for *user_id* and return its token."""
        token = secrets.token_urlsafe(_TOKEN_BYTES)
        expires_at = utcnow() + self.ttl
        async with persistence_guard("issue_session"):
            session.add(Session(user_id=user_id, token=token, expires_at=expires_at))
            await session.flush()
        logger.info("Issued session for user %s (expires %s)", user_id, expires_at.isoformat())
        return IssuedSession(token=token, user_id=user_id, expires_at=expires_at)

    async def validate(
        self,
        session: AsyncSession,
        candidate_token: Optional[str],
    ) -> AuthenticatedUser:
        """
        Resolve a presented token to its user.

        Raises ``MissingToken``, ``InvalidSession`` or ``SessionExpired``.
        """
        if not candidate_token:
            raise MissingToken()

        async with persistence_guard("validate_session"):
            result = await session.execute(
                select(Session.expires_at, User.user_id, User.email)
                .select_from(Session)
                .join(User, User.user_id == Session.user_id)
                .where(Session.token == candidate_token)
            )
            row = result.first()

        if row is None:
            raise InvalidSession()
        if utcnow() >= as_utc(row.expires_at):
            raise SessionExpired()
        return AuthenticatedUser(user_id=row.user_id, email=row.email)

    async def revoke(self, session: AsyncSession, candidate_token: Optional[str]) -> int:
        """Delete every session whose token matches exactly; returns the count."""
        if not candidate_token:
            return 0
        async with persistence_guard("revoke_session"):
            result = await session.execute(
                delete(Session)
                .where(Session.token == candidate_token)
                .execution_options(synchronize_session=False)
            )
        if result.rowcount:
            logger.info("Revoked %d session(s)", result.rowcount)
        return result.rowcount or 0
