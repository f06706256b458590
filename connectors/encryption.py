"""
Provider-token encryption at rest.

Uses Fernet (AES-128-CBC + HMAC-SHA256) from the ``cryptography`` library.
The key comes from ``config.token_encryption_key``
(env var: ``TOKEN_ENCRYPTION_KEY``).

Without a key, tokens are stored as plaintext and a warning is logged once.
Generate a key with::

    python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"
"""

from __future__ import annotations

import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from config.settings import config

logger = logging.getLogger(__name__)


class TokenCipher:
    """Encrypt / decrypt provider tokens for the ``provider_tokens`` table."""

    def __init__(self, key: Optional[str]) -> None:
        self._fernet: Optional[Fernet] = None
        if key:
            # An invalid key is a configuration error; let it surface.
            self._fernet = Fernet(key.encode())

    @property
    def enabled(self) -> bool:
        return self._fernet is not None

    def encrypt(self, plaintext: str) -> str:
        if self._fernet is None:
            return plaintext
        return self._fernet.encrypt(plaintext.encode()).decode()

    def decrypt(self, ciphertext: str) -> str:
        """
        Decrypt a stored token.

        Values written before encryption was enabled are not Fernet tokens
        and are returned unchanged.
        """
        if self._fernet is None:
            return ciphertext
        try:
            return self._fernet.decrypt(ciphertext.encode()).decode()
        except InvalidToken:
            return ciphertext


_cipher: Optional[TokenCipher] = None


def get_cipher() -> TokenCipher:
    """Return the process-wide cipher built from settings."""
    global _cipher
    if _cipher is None:
        _cipher = TokenCipher(config.token_encryption_key)
        if _cipher.enabled:
            logger.info("Token encryption enabled (Fernet/AES-128-CBC)")
        else:
            logger.warning(
                "TOKEN_ENCRYPTION_KEY not set — provider tokens will be stored as plaintext."
            )
    return _cipher
