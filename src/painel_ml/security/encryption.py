"""
Encryption of OAuth tokens at rest.

Tokens are encrypted with Fernet. ENCRYPTION_MASTER_KEY is the primary key;
ENCRYPTION_SECONDARY_KEY, when set, still decrypts values written before a
key rotation.
"""

import os
from typing import List, Optional

from cryptography.fernet import Fernet, MultiFernet, InvalidToken

from painel_ml.utils.logger import get_logger

logger = get_logger(__name__)


class CredentialEncryptor:
    """Encrypts and decrypts token strings with a MultiFernet key ring."""

    def __init__(self, master_key: Optional[str] = None):
        """
        Args:
            master_key: Urlsafe base64 Fernet key. Read from ENCRYPTION_MASTER_KEY when omitted.

        Raises:
            ValueError: If no master key is available.
        """
        self.master_key = master_key or os.getenv("ENCRYPTION_MASTER_KEY")

        if not self.master_key:
            raise ValueError(
                "ENCRYPTION_MASTER_KEY environment variable is required. "
                "Generate one with CredentialEncryptor.generate_key()"
            )

        self.keys = self._load_keys()
        self.fernet = MultiFernet([Fernet(key) for key in self.keys])

        logger.info(f"Token encryptor ready with {len(self.keys)} key(s)")

    def _load_keys(self) -> List[bytes]:
        keys = [self._as_bytes(self.master_key)]

        secondary = os.getenv("ENCRYPTION_SECONDARY_KEY")
        if secondary:
            keys.append(self._as_bytes(secondary))
            logger.info("Secondary encryption key loaded for rotation")

        return keys

    @staticmethod
    def _as_bytes(key) -> bytes:
        return key.encode() if isinstance(key, str) else key

    def encrypt(self, plaintext: str) -> str:
        if not plaintext:
            raise ValueError("Cannot encrypt empty string")
        return self.fernet.encrypt(plaintext.encode()).decode()

    def decrypt(self, ciphertext: str) -> str:
        """
        Decrypt a token.

        Raises:
            ValueError: On empty input.
            InvalidToken: When no key in the ring can decrypt the value.
        """
        if not ciphertext:
            raise ValueError("Cannot decrypt empty string")

        try:
            return self.fernet.decrypt(ciphertext.encode()).decode()
        except InvalidToken:
            logger.error("Token decryption failed - wrong key or corrupted value")
            raise

    def rotate_key(self, new_key: str) -> None:
        """Make new_key the primary key, keeping the old ones for decryption."""
        self.keys.insert(0, self._as_bytes(new_key))
        self.fernet = MultiFernet([Fernet(key) for key in self.keys])
        logger.info(f"Key rotation complete - now using {len(self.keys)} keys")

    def reencrypt(self, ciphertext: str) -> str:
        """Re-encrypt a stored value under the current primary key."""
        return self.fernet.rotate(ciphertext.encode()).decode()

    @staticmethod
    def generate_key() -> str:
        return Fernet.generate_key().decode()


_encryptor: Optional[CredentialEncryptor] = None


def get_encryptor() -> CredentialEncryptor:
    global _encryptor
    if _encryptor is None:
        _encryptor = CredentialEncryptor()
    return _encryptor


def reset_encryptor() -> None:
    """Drop the cached encryptor so the next call re-reads the environment."""
    global _encryptor
    _encryptor = None


def encrypt_token(plaintext: str) -> str:
    return get_encryptor().encrypt(plaintext)


def decrypt_token(ciphertext: str) -> str:
    return get_encryptor().decrypt(ciphertext)
