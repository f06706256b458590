"""
FastAPI dependencies for authentication.

Provides ``db_session``, ``get_session_manager`` and ``get_current_user``,
used across all protected routes.
"""

from __future__ import annotations

from datetime import timedelta
from typing import AsyncGenerator, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from auth.sessions import SessionManager, extract_session_token
from config.settings import config
from database.session import get_db_session
from utils.schemas import AuthenticatedUser


async def db_session(
    session: AsyncSession = Depends(get_db_session),
) -> AsyncGenerator[AsyncSession, None]:
    """Yield a DB session for route handlers."""
    yield session


def get_session_manager() -> SessionManager:
    return SessionManager(ttl=timedelta(seconds=config.session_ttl_seconds))


def presented_session_token(request: Request) -> Optional[str]:
    """Session token from the bearer header, else from the session cookie."""
    return extract_session_token(
        request.headers.get("Authorization"),
        request.cookies.get(config.session_cookie_name),
    )


async def get_current_user(
    token: Optional[str] = Depends(presented_session_token),
    session: AsyncSession = Depends(db_session),
    sessions: SessionManager = Depends(get_session_manager),
) -> AuthenticatedUser:
    """
    Validate the presented session token and return the signed-in user.

    Raises a ``SessionError`` subclass, rendered as a 401 JSON body.
    """
    return await sessions.validate(session, token)
