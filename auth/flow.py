"""
OAuthLoginFlow — the login / connect-inbox round-trip.

``start`` builds the provider redirect; ``complete`` runs the callback:
exchange → resolve identity → upsert identity → upsert token → issue
session, strictly in that order, inside one database transaction.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from auth.errors import MissingCode, PersistenceFailed
from auth.sessions import SessionManager
from connectors.base import BaseConnector
from connectors.identity import IdentityResolver
from connectors.state import FlowKind, decode_flow
from connectors.token_store import AccountStore
from utils.schemas import CallbackResult

logger = logging.getLogger(__name__)


class OAuthLoginFlow:
    def __init__(
        self,
        connector: BaseConnector,
        resolver: IdentityResolver,
        store: AccountStore,
        sessions: SessionManager,
        *,
        frontend_url: str,
        main_path: str = "/Main",
        connect_path: str = "/ConnectInbox",
        tenant_id: Optional[str] = None,
    ) -> None:
        self.connector = connector
        self.resolver = resolver
        self.store = store
        self.sessions = sessions
        self.frontend_url = frontend_url.rstrip("/")
        self.main_path = main_path
        self.connect_path = connect_path
        self.tenant_id = tenant_id

    def start(self, flow: FlowKind) -> str:
        """Return the provider authorize URL for *flow*."""
        request = self.connector.build_authorize_url(flow)
        logger.info("Starting %s flow via %s", flow.value, self.connector.provider_name)
        return request.url

    def landing_path(self, state: Optional[str]) -> str:
        if decode_flow(state) is FlowKind.CONNECT:
            return self.connect_path
        return self.main_path

    async def complete(
        self,
        session: AsyncSession,
        code: Optional[str],
        state: Optional[str],
    ) -> CallbackResult:
        """
        Finish the OAuth callback and return where to send the browser.

        The session token is carried in the redirect's URL fragment.
        """
        if not code:
            raise MissingCode()

        token_set = await self.connector.exchange(code)
        email = await self.resolver.resolve(token_set.access_token)

        try:
            identity = await self.store.upsert_identity(session, email, self.tenant_id)
            await self.store.upsert_token(session, identity.account_id, token_set)
            issued = await self.sessions.issue(session, identity.user_id)
            await session.commit()
        except PersistenceFailed:
            await session.rollback()
            raise
        except SQLAlchemyError as exc:
            await session.rollback()
            logger.error("Callback commit failed: %s", exc.__class__.__name__)
            raise PersistenceFailed(detail="commit") from exc

        path = self.landing_path(state)
        logger.info("Signed in %s (user=%s), redirecting to %s", email, identity.user_id, path)
        return CallbackResult(
            redirect_url=f"{self.frontend_url}{path}#token={issued.token}",
            email=email,
            session=issued,
        )
