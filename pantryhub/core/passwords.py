"""Password hashing and verification.

Hashes are self-describing argon2 strings ($argon2id$v=19$m=...,t=...,p=...$salt$digest),
so the salt and cost parameters travel with the hash and need no separate storage.
"""

import logging

from passlib.context import CryptContext
from passlib.exc import MissingBackendError

from pantryhub.core.errors import ConfigurationError


logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(plaintext: str) -> str:
    """Hash a password with a freshly generated random salt.

    Two calls with the same plaintext return different strings.

    Raises:
        ConfigurationError: If the argon2 backend is unavailable or misconfigured
    """
    try:
        return pwd_context.hash(plaintext)
    except MissingBackendError as e:
        logger.critical("password_hash_failed", extra={"error_type": type(e).__name__})
        msg = "Password hashing is not available"
        raise ConfigurationError(msg) from e


def verify_password(plaintext: str, encoded_hash: str) -> bool:
    """Check a password against a stored hash in constant time.

    Returns False, never raises, when the stored hash is malformed or unrecognized.
    """
    try:
        return pwd_context.verify(plaintext, encoded_hash)
    except (ValueError, TypeError):
        logger.warning("password_hash_unreadable")
        return False
