"""
Encryption at rest for linked-account OAuth tokens (Fernet).
"""

import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken


class CredentialEncryption:
    """Encrypts and decrypts platform tokens with a key derived from the app secret."""

    def __init__(self, secret_key: str):
        # Fernet needs a 32-byte urlsafe-base64 key; derive it from the secret
        key_bytes = hashlib.sha256(secret_key.encode()).digest()
        self.fernet = Fernet(base64.urlsafe_b64encode(key_bytes))

    def encrypt(self, value: str) -> str:
        if not value:
            return ""
        return self.fernet.encrypt(value.encode()).decode()

    def decrypt(self, encrypted_value: str) -> str:
        """
        Decrypt a stored token.

        Raises:
            ValueError: If the value was not produced with this secret
        """
        if not encrypted_value:
            return ""
        try:
            return self.fernet.decrypt(encrypted_value.encode()).decode()
        except InvalidToken as e:
            raise ValueError("Failed to decrypt credential") from e


def encrypt_credential(value: str, secret_key: str) -> str:
    return CredentialEncryption(secret_key).encrypt(value)


def decrypt_credential(encrypted_value: str, secret_key: str) -> str:
    return CredentialEncryption(secret_key).decrypt(encrypted_value)
