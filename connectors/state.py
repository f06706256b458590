"""
OAuth ``state`` values tagged with the flow that started them.

The callback recovers whether the user was logging in or connecting an
inbox from the state alone, so nothing is stored server-side between the
redirect and the callback.  Format: ``<flow>_<random>``.
"""

from __future__ import annotations

import secrets
from enum import Enum
from typing import Optional

_NONCE_BYTES = 24


class FlowKind(str, Enum):
    LOGIN = "login"
    CONNECT = "connect"


def encode_state(flow: FlowKind) -> str:
    """Return a fresh, unguessable state string tagged with *flow*."""
    return f"{flow.value}_{secrets.token_urlsafe(_NONCE_BYTES)}"


def decode_flow(state: Optional[str]) -> FlowKind:
    """
    Recover the flow tag from a state string.

    Missing, malformed or unknown tags fall back to ``FlowKind.LOGIN``; the
    landing page is cosmetic and must not fail the OAuth round-trip.
    """
    if not state:
        return FlowKind.LOGIN
    tag, sep, _nonce = state.partition("_")
    if not sep:
        return FlowKind.LOGIN
    try:
        return FlowKind(tag)
    except ValueError:
        return FlowKind.LOGIN
