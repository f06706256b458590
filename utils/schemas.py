"""
Pydantic schemas shared by the connector, store, session and API layers.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# ═══════════════════════════════════════════════════════════════════════════════
# OAuth — provider side
# ═══════════════════════════════════════════════════════════════════════════════


class AuthorizeRequest(BaseModel):
    url: str
    state: str


class TokenSet(BaseModel):
    """
    Tokens returned by the authorization-code grant.

    The secret fields are excluded from ``repr`` so the model can appear in
    log lines and tracebacks without leaking credentials.
    """

    model_config = ConfigDict(frozen=True)

    access_token: str = Field(..., repr=False)
    refresh_token: str = Field(..., repr=False)
    expires_in: int = 3600
    scope: str = ""


class IdentityProfile(BaseModel):
    email: Optional[str] = None
    display_name: Optional[str] = None


# ═══════════════════════════════════════════════════════════════════════════════
# Persistence results
# ═══════════════════════════════════════════════════════════════════════════════


class AccountIdentity(BaseModel):
    user_id: uuid.UUID
    account_id: uuid.UUID


class StoredToken(BaseModel):
    account_id: uuid.UUID
    access_token: str = Field(..., repr=False)
    refresh_token: str = Field(..., repr=False)
    expires_at: datetime
    scope: str


# ═══════════════════════════════════════════════════════════════════════════════
# Sessions
# ═══════════════════════════════════════════════════════════════════════════════


class IssuedSession(BaseModel):
    token: str = Field(..., repr=False)
    user_id: uuid.UUID
    expires_at: datetime


class AuthenticatedUser(BaseModel):
    user_id: uuid.UUID
    email: str


class CallbackResult(BaseModel):
    """Outcome of a completed OAuth callback."""

    redirect_url: str = Field(..., repr=False)
    email: str
    session: IssuedSession


# ═══════════════════════════════════════════════════════════════════════════════
# API responses
# ═══════════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    ok: bool = False
    error: str


class MeResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ok: bool = True
    email: str
    inbox_connected: bool = Field(False, alias="inboxConnected")
