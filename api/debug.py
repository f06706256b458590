"""
Debug / introspection routes. Mounted only when ``DEBUG_ROUTES`` is set.

Route prefix: /debug
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_account_store, get_identity_resolver
from auth.dependencies import db_session, get_current_user
from config.settings import config
from connectors.identity import IdentityResolver
from connectors.token_store import AccountStore
from database.helpers import persistence_guard
from utils.schemas import AuthenticatedUser

logger = logging.getLogger(__name__)

router = APIRouter(tags=["debug"])


@router.get("/db")
async def debug_db(
    session: AsyncSession = Depends(db_session),
    store: AccountStore = Depends(get_account_store),
) -> Dict[str, Any]:
    return {"ok": True, "providerAccounts": await store.count_accounts(session)}


@router.get("/env")
async def debug_env() -> Dict[str, Optional[str]]:
    return {
        "FRONTEND_URL": config.frontend_url or None,
        "OUTLOOK_REDIRECT_URI": config.outlook_redirect_uri or None,
    }


@router.get("/provider/me")
async def debug_provider_me(
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(db_session),
    store: AccountStore = Depends(get_account_store),
    resolver: IdentityResolver = Depends(get_identity_resolver),
):
    """
    Look up the caller's provider identity with their stored access token
    (no inbox access) and refresh the account's email on record.
    """
    account = await store.find_account(session, user.email)
    token = await store.get_token(session, account.account_id) if account else None
    if token is None:
        return JSONResponse(
            status_code=400,
            content={"ok": False, "error": "No stored provider token yet"},
        )

    # IdentityUnavailable propagates as a 502.
    profile = await resolver.fetch_profile(token.access_token)
    email = await store.refresh_account_email(session, account.account_id, profile.email)
    async with persistence_guard("refresh_account_email"):
        await session.commit()
    return {"ok": True, "email": email, "displayName": profile.display_name}
