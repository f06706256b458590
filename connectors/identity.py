"""
IdentityResolver — turn a provider access token into a durable identity.

Calls Microsoft Graph ``/me`` with the access token as bearer credential.
During the sign-in callback a failed lookup degrades to a placeholder email
(unless the resolver is strict), so an unavailable identity endpoint never
blocks login.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from auth.errors import IdentityUnavailable
from config.settings import ProviderConfig
from utils.schemas import IdentityProfile

logger = logging.getLogger(__name__)

PLACEHOLDER_EMAIL = "unknown@outlook"

_ME_SELECT = "displayName,mail,userPrincipalName"


def is_placeholder(email: Optional[str], placeholder_email: str = PLACEHOLDER_EMAIL) -> bool:
    """True when *email* carries no real identity."""
    return not email or email == placeholder_email


def _text(value: Any) -> Optional[str]:
    """Graph fields count only as non-empty strings."""
    if isinstance(value, str) and value:
        return value
    return None


class IdentityResolver:
    """Resolve the signed-in user's email through the provider's `/me`."""

    def __init__(
        self,
        provider_config: ProviderConfig,
        *,
        placeholder_email: str = PLACEHOLDER_EMAIL,
        strict: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = provider_config
        self.placeholder_email = placeholder_email
        self.strict = strict
        self._transport = transport

    @property
    def me_url(self) -> str:
        return f"{self._config.graph_base_url.rstrip('/')}/v1.0/me"

    async def fetch_profile(self, access_token: str) -> IdentityProfile:
        """
        Fetch the profile behind *access_token*.

        Raises ``IdentityUnavailable`` on network errors, HTTP status >= 400
        or a body that is not a JSON object.
        """
        try:
            async with httpx.AsyncClient(
                timeout=self._config.timeout, transport=self._transport
            ) as client:
                resp = await client.get(
                    self.me_url,
                    params={"$select": _ME_SELECT},
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.HTTPError as exc:
            raise IdentityUnavailable(detail=type(exc).__name__) from exc

        if resp.status_code >= 400:
            raise IdentityUnavailable(detail=f"status {resp.status_code}")
        try:
            body = resp.json()
        except ValueError as exc:
            raise IdentityUnavailable(detail="non-JSON body") from exc
        if not isinstance(body, dict):
            raise IdentityUnavailable(detail="unexpected body")

        return IdentityProfile(
            email=_text(body.get("mail")) or _text(body.get("userPrincipalName")),
            display_name=_text(body.get("displayName")),
        )

    async def resolve(self, access_token: str) -> str:
        """
        Return the user's mail address, falling back to the principal name.

        Any failure yields ``placeholder_email``; a strict resolver raises
        ``IdentityUnavailable`` instead.
        """
        try:
            profile = await self.fetch_profile(access_token)
        except IdentityUnavailable as exc:
            if self.strict:
                logger.warning("Identity lookup failed (strict): %s", exc)
                raise
            logger.warning("Identity lookup failed, using placeholder: %s", exc)
            return self.placeholder_email

        if not profile.email:
            if self.strict:
                raise IdentityUnavailable(detail="no mail or userPrincipalName")
            logger.warning("Identity response had no mail or userPrincipalName")
            return self.placeholder_email
        return profile.email
