"""
OutlookConnector — OAuth2 authorization-code flow against the Microsoft
identity platform (v2.0 endpoints).
"""

from __future__ import annotations

import logging
from typing import Any, Dict
from urllib.parse import urlencode

import httpx

from auth.errors import ExchangeFailed
from connectors.base import BaseConnector
from utils.schemas import TokenSet

logger = logging.getLogger(__name__)

_DEFAULT_EXPIRES_IN = 3600


class OutlookConnector(BaseConnector):
    """OAuth2 connector for Outlook / Microsoft 365 accounts."""

    @property
    def provider_name(self) -> str:
        return "outlook"

    def get_auth_url(self, state: str) -> str:
        params = {
            "client_id": self._config.client_id,
            "response_type": "code",
            "redirect_uri": self._config.redirect_uri,
            "response_mode": "query",       # state comes back beside the code
            "scope": self._config.scope_string,
            "state": state,
        }
        return f"{self._config.authorize_endpoint}?{urlencode(params)}"

    async def exchange(self, code: str) -> TokenSet:
        """Exchange auth code for access + refresh tokens."""
        try:
            async with self._client() as client:
                resp = await client.post(
                    self._config.token_endpoint,
                    data={
                        "grant_type": "authorization_code",
                        "code": code,
                        "redirect_uri": self._config.redirect_uri,
                        "client_id": self._config.client_id,
                        "client_secret": self._config.client_secret,
                        "scope": self._config.scope_string,
                    },
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as exc:
            logger.warning("Token endpoint unreachable: %s", type(exc).__name__)
            raise ExchangeFailed(detail=type(exc).__name__) from exc

        payload = _json_or_empty(resp)
        if resp.status_code >= 400:
            logger.warning(
                "Token exchange rejected: status=%s error=%s",
                resp.status_code,
                payload.get("error"),
            )
            raise ExchangeFailed(detail=f"status {resp.status_code}")

        access_token = payload.get("access_token")
        refresh_token = payload.get("refresh_token")
        if not access_token or not refresh_token:
            logger.warning(
                "Token exchange incomplete: access_token=%s refresh_token=%s",
                bool(access_token),
                bool(refresh_token),
            )
            raise ExchangeFailed(detail="access and refresh tokens are both required")

        return TokenSet(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=_expires_in(payload.get("expires_in")),
            scope=self._config.scope_string,
        )


def _json_or_empty(resp: httpx.Response) -> Dict[str, Any]:
    try:
        body = resp.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _expires_in(value: Any) -> int:
    try:
        seconds = int(value)
    except (TypeError, ValueError):
        return _DEFAULT_EXPIRES_IN
    return seconds if seconds > 0 else _DEFAULT_EXPIRES_IN
