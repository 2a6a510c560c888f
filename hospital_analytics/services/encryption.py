"""
Application-layer encryption for PHI fields of the live admission store.

Demonstrates:
- Symmetric encryption (Fernet) for patient names at rest
- Key management awareness (key from settings/env, not hardcoded)
- Encrypt/decrypt interface used by the admission store
"""

import logging

from cryptography.fernet import Fernet

from hospital_analytics.config import settings

logger = logging.getLogger(__name__)


class EncryptionService:
    """Wraps Fernet symmetric encryption for PHI fields."""

    def __init__(self, key: str | bytes | None = None):
        raw_key = key or settings.PHI_ENCRYPTION_KEY
        if raw_key:
            self._fernet = Fernet(raw_key.encode() if isinstance(raw_key, str) else raw_key)
        else:
            # Ephemeral key: rows written under it cannot be read after a restart.
            logger.warning("PHI_ENCRYPTION_KEY not set – using an ephemeral key")
            self._fernet = Fernet(Fernet.generate_key())

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a string and return base64-encoded ciphertext."""
        if not plaintext:
            return ""
        return self._fernet.encrypt(plaintext.encode()).decode()

    def decrypt(self, ciphertext: str) -> str:
        """Decrypt base64-encoded ciphertext back to plaintext."""
        if not ciphertext:
            return ""
        return self._fernet.decrypt(ciphertext.encode()).decode()
