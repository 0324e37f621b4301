"""
Credential store: keyed access to user identity records.

Lookups by email normalize the address first. The password-reset challenge
columns are only ever changed through single UPDATE statements so that
concurrent verifications cannot lose attempt increments.
"""
from datetime import datetime
from typing import Optional
import logging

from sqlalchemy.orm import Session

from .models import User
from .utils import normalize_email

logger = logging.getLogger(__name__)


class CredentialStore:
    """
    Persistence operations for ``User`` records.

    Args:
        db: Database session
    """

    def __init__(self, db: Session):
        self.db = db

    def find_by_email(self, email: str) -> Optional[User]:
        normalized = normalize_email(email)
        if not normalized:
            return None
        return self.db.query(User).filter(User.email == normalized).first()

    def find_by_id(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def find_by_subject_id(self, subject_id: str) -> Optional[User]:
        if not subject_id:
            return None
        return self.db.query(User).filter(User.firebase_uid == subject_id).first()

    def create(self, **fields) -> User:
        """
        Insert a new user. The email is normalized before storage.

        Raises:
            sqlalchemy.exc.IntegrityError: On a duplicate email or subject id
        """
        fields["email"] = normalize_email(fields.get("email"))
        user = User(**fields)
        self.db.add(user)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(user)
        logger.info(f"User account created: {user.id} (provider={user.provider.value})")
        return user

    def save(self, user: User) -> User:
        self.db.add(user)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(user)
        return user

    def set_otp_challenge(self, user: User, code: str, expires_at: datetime) -> None:
        """
        Replace the user's challenge with a new code and reset attempts.
        """
        self.db.query(User).filter(User.id == user.id).update(
            {User.otp_code: code, User.otp_expires_at: expires_at, User.otp_attempts: 0},
            synchronize_session=False,
        )
        self.db.commit()
        self.db.refresh(user)

    def clear_otp_challenge(
        self,
        user: User,
        expected_code: Optional[str] = None,
        max_attempts: Optional[int] = None,
    ) -> bool:
        """
        Clear the user's challenge.

        When ``expected_code`` is given the clear only happens if that code is
        still the current one (compare-and-swap). ``max_attempts`` further
        requires the challenge to be below the attempt cap.

        Returns:
            bool: True if a row was changed
        """
        query = self.db.query(User).filter(User.id == user.id)
        if expected_code is not None:
            query = query.filter(User.otp_code == expected_code)
        if max_attempts is not None:
            query = query.filter(User.otp_attempts < max_attempts)
        changed = query.update(
            {User.otp_code: None, User.otp_expires_at: None, User.otp_attempts: 0},
            synchronize_session=False,
        )
        self.db.commit()
        self.db.refresh(user)
        return changed == 1

    def increment_otp_attempts(self, user: User, expected_code: str) -> Optional[int]:
        """
        Atomically add one failed attempt to the current challenge.

        Args:
            user: Challenge owner
            expected_code: The code the caller compared against

        Returns:
            The new attempt count, or None if the challenge was replaced or
            cleared since it was read
        """
        changed = (
            self.db.query(User)
            .filter(User.id == user.id, User.otp_code == expected_code)
            .update({User.otp_attempts: User.otp_attempts + 1}, synchronize_session=False)
        )
        self.db.commit()
        self.db.refresh(user)
        if changed != 1:
            return None
        return user.otp_attempts
