"""
REST API routes for signed-in users.
"""

from __future__ import annotations

import logging
from typing import Dict

from fastapi import APIRouter, Depends

from auth.dependencies import get_current_user
from utils.schemas import AuthenticatedUser, ErrorResponse, MeResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", tags=["health"])
async def health() -> Dict[str, bool]:
    return {"ok": True}


@router.get(
    "/identity/me",
    tags=["identity"],
    response_model=MeResponse,
    responses={401: {"model": ErrorResponse}},
)
async def me(user: AuthenticatedUser = Depends(get_current_user)) -> MeResponse:
    """Identify the logged-in user via bearer token or session cookie."""
    # Inbox access is not implemented yet.
    return MeResponse(email=user.email, inbox_connected=False)
