"""
Unit tests for token encryption
"""
import pytest
from cryptography.fernet import InvalidToken

from painel_ml.security.encryption import (
    CredentialEncryptor,
    decrypt_token,
    encrypt_token,
    reset_encryptor,
)


class TestCredentialEncryptor:
    """Test Fernet token encryption"""

    def test_round_trip(self):
        encryptor = CredentialEncryptor(CredentialEncryptor.generate_key())

        ciphertext = encryptor.encrypt("APP_USR-123")

        assert ciphertext != "APP_USR-123"
        assert encryptor.decrypt(ciphertext) == "APP_USR-123"

    def test_ciphertexts_differ(self):
        encryptor = CredentialEncryptor(CredentialEncryptor.generate_key())
        assert encryptor.encrypt("same") != encryptor.encrypt("same")

    def test_wrong_key_fails(self):
        ciphertext = CredentialEncryptor(CredentialEncryptor.generate_key()).encrypt("secret")
        other = CredentialEncryptor(CredentialEncryptor.generate_key())

        with pytest.raises(InvalidToken):
            other.decrypt(ciphertext)

    def test_empty_values_rejected(self):
        encryptor = CredentialEncryptor(CredentialEncryptor.generate_key())
        with pytest.raises(ValueError):
            encryptor.encrypt("")
        with pytest.raises(ValueError):
            encryptor.decrypt("")

    def test_missing_master_key(self, monkeypatch):
        monkeypatch.delenv("ENCRYPTION_MASTER_KEY", raising=False)
        with pytest.raises(ValueError):
            CredentialEncryptor()

    def test_secondary_key_decrypts_old_values(self, monkeypatch):
        old_key = CredentialEncryptor.generate_key()
        old_ciphertext = CredentialEncryptor(old_key).encrypt("legacy-token")

        monkeypatch.setenv("ENCRYPTION_SECONDARY_KEY", old_key)
        encryptor = CredentialEncryptor(CredentialEncryptor.generate_key())

        assert encryptor.decrypt(old_ciphertext) == "legacy-token"

    def test_rotate_and_reencrypt(self):
        old_key = CredentialEncryptor.generate_key()
        encryptor = CredentialEncryptor(old_key)
        ciphertext = encryptor.encrypt("token")

        encryptor.rotate_key(CredentialEncryptor.generate_key())
        rotated = encryptor.reencrypt(ciphertext)

        assert encryptor.decrypt(rotated) == "token"
        with pytest.raises(InvalidToken):
            CredentialEncryptor(old_key).decrypt(rotated)


def test_module_helpers_use_environment_key():
    reset_encryptor()
    assert decrypt_token(encrypt_token("refresh-1")) == "refresh-1"
