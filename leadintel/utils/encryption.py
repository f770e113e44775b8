"""
Encryption utilities for per-source webhook secrets.
Uses Fernet symmetric encryption with the configured ENCRYPTION_KEY.
"""
import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)


def _get_fernet() -> Optional[Fernet]:
    """Get a Fernet cipher using the configured encryption key."""
    from leadintel.config import get_settings
    settings = get_settings()

    key = settings.encryption_key
    if not key:
        logger.warning("ENCRYPTION_KEY not configured - storing webhook secrets as-is")
        return None

    return Fernet(key.encode() if isinstance(key, str) else key)


def encrypt_value(plaintext: Optional[str]) -> Optional[str]:
    """
    Encrypt a string value. Returns the encrypted token as a string.
    Stores plaintext if encryption key is not configured.
    """
    if not plaintext:
        return plaintext

    fernet = _get_fernet()
    if fernet is None:
        return plaintext

    return fernet.encrypt(plaintext.encode()).decode()


def decrypt_value(encrypted: Optional[str]) -> Optional[str]:
    """
    Decrypt a string value. Returns the plaintext string.
    Values that are not Fernet tokens are returned as-is (secrets stored
    before ENCRYPTION_KEY was configured).
    """
    if not encrypted:
        return encrypted

    fernet = _get_fernet()
    if fernet is None:
        return encrypted

    try:
        return fernet.decrypt(encrypted.encode()).decode()
    except InvalidToken:
        logger.warning("Webhook secret is not a valid Fernet token - using stored value")
        return encrypted
