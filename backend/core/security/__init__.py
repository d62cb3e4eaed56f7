"""
Security utilities for authentication and credential storage.
"""

from .encryption import decrypt_credential, encrypt_credential
from .tokens import TokenPayload, TokenService

__all__ = [
    "TokenService",
    "TokenPayload",
    "encrypt_credential",
    "decrypt_credential",
]
