# runcoach/utils/encryption.py

from cryptography.fernet import Fernet, InvalidToken
from flask import current_app
import logging

logger = logging.getLogger(__name__)


def get_cipher(key=None):
    """
    Fernet cipher for third-party tokens at rest, keyed by ENCRYPTION_KEY
    unless a key is passed explicitly.
    """
    if not key:
        key = current_app.config.get("ENCRYPTION_KEY")

    if not key:
        logger.error("ENCRYPTION_KEY not set in configuration.")
        raise ValueError("ENCRYPTION_KEY not set in configuration.")
    return Fernet(key.encode() if isinstance(key, str) else key)


def encrypt_token(token: str, key: str = None) -> str:
    return get_cipher(key).encrypt(token.encode()).decode()


def decrypt_token(encrypted: str, key: str = None) -> str:
    """Raises InvalidToken if the value was tampered with or the key rotated."""
    try:
        return get_cipher(key).decrypt(encrypted.encode()).decode()
    except InvalidToken:
        logger.error("Stored token could not be decrypted; was ENCRYPTION_KEY rotated?")
        raise
