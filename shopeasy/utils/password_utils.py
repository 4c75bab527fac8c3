# shopeasy/utils/password_utils.py

from typing import Optional

from passlib.context import CryptContext
import logging

from ..core.config import settings

logger = logging.getLogger(__name__)

# Create the context once and reuse it
bcrypt_context = CryptContext(
    schemes=['bcrypt'],
    deprecated='auto',
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


def password_policy_error(password: Optional[str]) -> Optional[str]:
    """
    Returns a human readable reason when the password breaks the length policy,
    or None when it is acceptable.
    """
    if not password or len(password) < settings.PASSWORD_MIN_LENGTH:
        return f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters"
    if len(password) > settings.PASSWORD_MAX_LENGTH:
        return "Password is too long"
    return None


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """
    Verifies a plain-text password against a hashed password.
    """
    if not hashed_password:
        return False
    return bcrypt_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """
    Hashes a plain-text password.
    """
    try:
        return bcrypt_context.hash(password)
    except Exception:
        logger.exception("Error occurred while hashing password.")
        raise
