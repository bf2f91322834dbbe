"""Token encryption helpers."""

from .encryption import CredentialEncryptor, encrypt_token, decrypt_token

__all__ = ["CredentialEncryptor", "encrypt_token", "decrypt_token"]
