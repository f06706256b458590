"""
BaseConnector — abstract interface for OAuth2 identity providers.

A provider subclass builds the authorize URL and performs the
authorization-code grant.  Identity lookup lives in
``connectors.identity``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

import httpx

from config.settings import ProviderConfig
from connectors.state import FlowKind, encode_state
from utils.schemas import AuthorizeRequest, TokenSet


class BaseConnector(ABC):
    """Abstract base for OAuth2 connectors."""

    def __init__(
        self,
        provider_config: ProviderConfig,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = provider_config
        self._transport = transport

    # ── Identity ────────────────────────────────────────────────────────
    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Unique slug, e.g. 'outlook'."""
        ...

    # ── OAuth flow ──────────────────────────────────────────────────────

    def build_authorize_url(self, flow: FlowKind) -> AuthorizeRequest:
        """
        Build the provider's authorization URL for *flow*.

        Returns the URL together with the opaque state embedded in it.
        """
        state = encode_state(flow)
        return AuthorizeRequest(url=self.get_auth_url(state), state=state)

    @abstractmethod
    def get_auth_url(self, state: str) -> str:
        """
        Build the provider's OAuth2 authorization URL.

        Parameters
        ----------
        state : str
            Opaque state string (encodes the flow kind).

        Returns
        -------
        The full URL to redirect the user to.
        """
        ...

    @abstractmethod
    async def exchange(self, code: str) -> TokenSet:
        """
        Exchange the authorization code for tokens.

        Raises
        ------
        ExchangeFailed
            When the provider is unreachable, rejects the grant, or omits
            the access or refresh token.
        """
        ...

    # ── Helpers ─────────────────────────────────────────────────────────

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._config.timeout, transport=self._transport)
