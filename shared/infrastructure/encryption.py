"""
Encryption utilities

Symmetric (Fernet) encryption for sensitive values such as the bank
account a venue owner receives payouts to.
"""

import base64
import hashlib

from cryptography.fernet import Fernet
from django.conf import settings


def get_encryption_key() -> bytes:
    """
    Derive the Fernet key from ``settings.ENCRYPTION_KEY``.

    Any string is accepted; it is hashed down to the 32 bytes Fernet needs.
    """
    key = getattr(settings, 'ENCRYPTION_KEY', None)

    if not key:
        raise ValueError(
            "ENCRYPTION_KEY not configured in settings. "
            "Generate one with: python -c 'from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())'"
        )

    if isinstance(key, str):
        key = base64.urlsafe_b64encode(hashlib.sha256(key.encode()).digest())

    return key


def encrypt_string(plaintext: str) -> str:
    if not plaintext:
        return ''
    return Fernet(get_encryption_key()).encrypt(plaintext.encode()).decode()


def decrypt_string(token: str) -> str:
    if not token:
        return ''
    return Fernet(get_encryption_key()).decrypt(token.encode()).decode()


def mask_account(value: str, visible: int = 4) -> str:
    """Mask all but the last ``visible`` characters, e.g. ``****1234``."""
    if not value:
        return ''
    if len(value) <= visible:
        return '*' * len(value)
    return '*' * (len(value) - visible) + value[-visible:]
