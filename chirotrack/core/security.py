"""
Core security utilities for password handling, token fingerprints and time.
"""
from datetime import datetime, timezone
from typing import Optional
from passlib.context import CryptContext
import hashlib
import logging

# Set up logging
logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=12)


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password

    Returns:
        str: Hashed password
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """
    Verify a password against a hash.

    Accounts created through federated sign-in have no hash; they never
    match.

    Args:
        plain_password: Plain text password
        hashed_password: Hashed password to compare against

    Returns:
        bool: True if password matches hash
    """
    if not hashed_password or plain_password is None:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        logger.warning("Stored password hash could not be parsed")
        return False


def hash_token(token: str) -> str:
    """
    Hash a token for storage and lookup.

    Args:
        token: Token to hash

    Returns:
        str: SHA-256 hex digest
    """
    return hashlib.sha256(token.encode()).hexdigest()


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Attach UTC to naive datetimes read back from the database.

    SQLite drops tzinfo on the way in; every stored timestamp is UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
