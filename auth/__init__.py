"""
First-party sign-in and sessions.

Provides:
  • The login / connect-inbox OAuth round-trip (``auth.flow``)
  • Session issuance, validation and revocation (``auth.sessions``)
  • The error taxonomy rendered as ``{"ok": false, "error": ...}``
  • ``get_current_user`` FastAPI dependency
"""
