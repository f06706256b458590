"""
Error taxonomy for the sign-in flows.

Every error carries the HTTP status it maps to and a stable, user-facing
message; ``api.middleware`` renders them as ``{"ok": false, "error": ...}``.
"""

from __future__ import annotations

from typing import Optional


class AuthFlowError(Exception):
    status_code: int = 500
    message: str = "Internal error"

    def __init__(self, message: Optional[str] = None, *, detail: Optional[str] = None):
        self.message = message or type(self).message
        self.detail = detail
        super().__init__(self.message if detail is None else f"{self.message}: {detail}")


# ── Caller errors (never retried) ─────────────────────────────────────


class CallerError(AuthFlowError):
    status_code = 400
    message = "Bad request"


class MissingCode(CallerError):
    message = "Missing code"


class EmailConflict(CallerError):
    status_code = 409
    message = "Email already linked to another account"


# ── Upstream (identity provider) errors ──────────────────────────────


class UpstreamError(AuthFlowError):
    status_code = 502
    message = "Identity provider error"


class ExchangeFailed(UpstreamError):
    status_code = 500
    message = "Token exchange failed"


class IdentityUnavailable(UpstreamError):
    message = "Identity resolution failed"


# ── Storage ──────────────────────────────────────────────────────────


class PersistenceFailed(AuthFlowError):
    message = "Persistence failed"


# ── Sessions (caller must re-authenticate) ───────────────────────────


class SessionError(AuthFlowError):
    status_code = 401
    message = "Unauthorized"


class MissingToken(SessionError):
    message = "Missing token"


class InvalidSession(SessionError):
    message = "Invalid session"


class SessionExpired(SessionError):
    message = "Session expired"
