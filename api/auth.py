"""
Auth API routes — provider login / connect, OAuth callback, logout.

Route prefix: /auth
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_login_flow
from auth.dependencies import db_session, get_session_manager, presented_session_token
from auth.flow import OAuthLoginFlow
from auth.sessions import SessionManager
from config.settings import config
from connectors.state import FlowKind
from database.helpers import persistence_guard

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.get("/provider/start")
async def start_login(flow: OAuthLoginFlow = Depends(get_login_flow)) -> RedirectResponse:
    """Redirect to the provider's consent page (login flow)."""
    return RedirectResponse(flow.start(FlowKind.LOGIN), status_code=302)


@router.get("/provider/connect")
async def start_connect(flow: OAuthLoginFlow = Depends(get_login_flow)) -> RedirectResponse:
    """Redirect to the provider's consent page (connect-inbox flow)."""
    return RedirectResponse(flow.start(FlowKind.CONNECT), status_code=302)


@router.get("/provider/callback")
async def oauth_callback(
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    session: AsyncSession = Depends(db_session),
    flow: OAuthLoginFlow = Depends(get_login_flow),
) -> RedirectResponse:
    """
    OAuth callback — the provider redirects here after consent.

    Exchanges the code, records the identity and tokens, issues a session
    and redirects to the frontend with ``#token=<session token>``.
    Failures are rendered as ``{"ok": false, "error": ...}`` by the app's
    error handler.
    """
    result = await flow.complete(session, code, state)
    response = RedirectResponse(result.redirect_url, status_code=302)
    if config.session_cookie_on_redirect:
        response.set_cookie(
            config.session_cookie_name,
            result.session.token,
            max_age=config.session_ttl_seconds,
            path="/",
            secure=config.session_cookie_secure,
            httponly=True,
            samesite="lax",
        )
    return response


@router.post("/logout")
async def logout(
    token: Optional[str] = Depends(presented_session_token),
    session: AsyncSession = Depends(db_session),
    sessions: SessionManager = Depends(get_session_manager),
) -> JSONResponse:
    """Revoke the presented session token (if any) and clear the cookie."""
    await sessions.revoke(session, token)
    async with persistence_guard("logout"):
        await session.commit()

    response = JSONResponse({"ok": True})
    response.delete_cookie(
        config.session_cookie_name,
        path="/",
        secure=config.session_cookie_secure,
        httponly=True,
        samesite="lax",
    )
    return response
