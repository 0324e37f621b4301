"""
Revocation ledger for session tokens.

A revoked token stays in the ledger only until its own expiry; after that the
token is unusable anyway and the entry is deleted. Cleanup runs passively on
every revoke and lookup.
"""
from datetime import datetime
from typing import Callable
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.security import hash_token, utc_now
from .models import RevokedToken

logger = logging.getLogger(__name__)


class RevocationLedger:
    """
    Tracks explicitly invalidated session tokens.

    Args:
        db: Database session
        clock: Returns the current UTC time
    """

    def __init__(self, db: Session, clock: Callable[[], datetime] = utc_now):
        self.db = db
        self.clock = clock

    def purge_expired(self) -> int:
        """
        Delete entries whose token has expired.

        Returns:
            int: Number of entries removed
        """
        removed = (
            self.db.query(RevokedToken)
            .filter(RevokedToken.expires_at < self.clock())
            .delete(synchronize_session=False)
        )
        self.db.commit()
        if removed:
            logger.info(f"Purged {removed} expired revoked token(s)")
        return removed

    def revoke(self, token: str, user_id: int, expires_at: datetime) -> bool:
        """
        Revoke a token until it expires.

        Revoking the same token twice is a no-op.

        Args:
            token: The raw session token
            user_id: Owner of the token
            expires_at: Expiry copied from the token's claims

        Returns:
            bool: True if a new entry was written
        """
        self.purge_expired()
        token_hash = hash_token(token)
        if self.db.query(RevokedToken.id).filter(RevokedToken.token_hash == token_hash).first():
            return False

        self.db.add(RevokedToken(token_hash=token_hash, user_id=user_id, expires_at=expires_at))
        try:
            self.db.commit()
        except IntegrityError:
            # Concurrent logout with the same token already inserted it
            self.db.rollback()
            return False
        return True

    def is_revoked(self, token: str) -> bool:
        """
        Check whether a token was revoked.

        Args:
            token: The raw session token

        Returns:
            bool: True if the token is in the ledger
        """
        token_hash = hash_token(token)
        entry = self.db.query(RevokedToken.id).filter(RevokedToken.token_hash == token_hash).first()
        if entry is None:
            self.purge_expired()
            return False
        return True
