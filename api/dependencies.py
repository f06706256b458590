"""
FastAPI dependencies that assemble the sign-in components from settings.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

import httpx
from fastapi import Depends

from auth.dependencies import get_session_manager
from auth.flow import OAuthLoginFlow
from auth.sessions import SessionManager
from config.settings import ProviderConfig, config
from connectors.identity import IdentityResolver
from connectors.outlook import OutlookConnector
from connectors.token_store import AccountStore


@lru_cache(maxsize=1)
def get_provider_config() -> ProviderConfig:
    return ProviderConfig.from_settings(config)


def get_provider_transport() -> Optional[httpx.AsyncBaseTransport]:
    """HTTP transport for provider calls; None uses httpx's default."""
    return None


def get_connector(
    provider_config: ProviderConfig = Depends(get_provider_config),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_provider_transport),
) -> OutlookConnector:
    return OutlookConnector(provider_config, transport=transport)


def get_identity_resolver(
    provider_config: ProviderConfig = Depends(get_provider_config),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_provider_transport),
) -> IdentityResolver:
    return IdentityResolver(
        provider_config,
        placeholder_email=config.placeholder_email,
        strict=config.identity_fallback == "reject",
        transport=transport,
    )


def get_account_store() -> AccountStore:
    return AccountStore(placeholder_email=config.placeholder_email)


def get_login_flow(
    connector: OutlookConnector = Depends(get_connector),
    resolver: IdentityResolver = Depends(get_identity_resolver),
    store: AccountStore = Depends(get_account_store),
    sessions: SessionManager = Depends(get_session_manager),
    provider_config: ProviderConfig = Depends(get_provider_config),
) -> OAuthLoginFlow:
    return OAuthLoginFlow(
        connector,
        resolver,
        store,
        sessions,
        frontend_url=config.frontend_url,
        main_path=config.frontend_main_path,
        connect_path=config.frontend_connect_path,
        tenant_id=provider_config.tenant,
    )
