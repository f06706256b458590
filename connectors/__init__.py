"""
OAuth2 integration with the identity provider.

Handles:
  • Authorize-URL generation with flow-tagged state
  • Callback code → token exchange
  • Identity lookup through the provider's ``/me``
  • Account / token upserts with Fernet encryption of tokens at rest
"""
