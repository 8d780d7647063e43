"""
Secret loading for API keys and JWT verification keys.
Values may be stored Fernet-encrypted in the environment; set
HEXBEAR_ENCRYPTION_KEY to decrypt them. Without that key, values are used as-is.
"""

import os
import base64
import logging
from typing import List, Optional
from cryptography.fernet import Fernet, InvalidToken

# Environment variable name for the encryption key
ENCRYPTION_KEY_ENV = 'HEXBEAR_ENCRYPTION_KEY'


def get_encryption_key() -> Optional[bytes]:
    key_str = os.environ.get(ENCRYPTION_KEY_ENV)
    if not key_str:
        return None
    return key_str.encode()


def encrypt_value(value: str) -> str:
    """
    Encrypt a string for storage in the environment.

    Raises:
        ValueError: if HEXBEAR_ENCRYPTION_KEY is not set
    """
    key = get_encryption_key()
    if not key:
        raise ValueError(f"{ENCRYPTION_KEY_ENV} is not set")
    encrypted = Fernet(key).encrypt(value.encode())
    return base64.urlsafe_b64encode(encrypted).decode()


def decrypt_value(encrypted_value: str) -> str:
    key = get_encryption_key()
    if not key:
        raise ValueError(f"{ENCRYPTION_KEY_ENV} is not set")
    try:
        encrypted_bytes = base64.urlsafe_b64decode(encrypted_value)
        return Fernet(key).decrypt(encrypted_bytes).decode()
    except (InvalidToken, ValueError, TypeError) as e:
        logging.error(f"Failed to decrypt value: {e}")
        raise ValueError("Failed to decrypt value")


def get_secret(env_var_name: str) -> Optional[str]:
    """Reads an env var, decrypting it when an encryption key is configured."""
    value = os.environ.get(env_var_name)
    if not value:
        return None
    if get_encryption_key() is None:
        return value
    try:
        return decrypt_value(value)
    except ValueError:
        logging.warning(f"Failed to decrypt {env_var_name}, using raw value")
        return value


def get_gemini_api_keys() -> List[str]:
    """Up to 4 keys for redundancy, GEMINI_API_KEY_1..4, falling back to GEMINI_API_KEY."""
    keys = [get_secret(f"GEMINI_API_KEY_{i + 1}") for i in range(4)]
    keys = [key for key in keys if key]
    if not keys and get_secret("GEMINI_API_KEY"):
        keys = [get_secret("GEMINI_API_KEY")]
    return keys


def get_jwt_secret_keys() -> List[str]:
    """CURRENT, PREVIOUS and NEXT keys for rotation; JWT_SECRET_KEY when rotation is not configured."""
    keys = [get_secret(f"JWT_SECRET_KEY_{key_type}") for key_type in ('CURRENT', 'PREVIOUS', 'NEXT')]
    keys = [key for key in keys if key]
    if not keys and get_secret("JWT_SECRET_KEY"):
        keys = [get_secret("JWT_SECRET_KEY")]
    return keys
