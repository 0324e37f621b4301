"""
One-time passcode engine for password resets.

Each user carries at most one challenge::

    EMPTY -> ISSUED -> CONSUMED | EXPIRED | LOCKED

A consumed or expired challenge is cleared back to EMPTY. A locked challenge
keeps its code; only a reissue recovers from LOCKED or EXPIRED.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable
import enum
import logging
import secrets

from ..core.security import as_utc, utc_now
from ..exceptions import ValidationException
from .exceptions import (
    NoChallengeException,
    NoPasswordCredentialException,
    OtpExpiredException,
    OtpMismatchException,
    TooManyAttemptsException,
)
from .models import User
from .store import CredentialStore
from .tokens import PASSWORD_RESET_PURPOSE, SessionTokenService

logger = logging.getLogger(__name__)


class OtpState(str, enum.Enum):
    EMPTY = "EMPTY"
    ISSUED = "ISSUED"
    EXPIRED = "EXPIRED"
    LOCKED = "LOCKED"


@dataclass(frozen=True)
class IssuedOtp:
    code: str
    expires_at: datetime


@dataclass(frozen=True)
class OtpVerification:
    user: User
    reset_token: str


class OtpChallengeEngine:
    """
    Generates, stores and verifies password-reset codes.

    Args:
        store: Credential store holding the challenge
        token_service: Issues the reset authorization token on success
        length: Number of digits per code
        ttl: Code lifetime
        max_attempts: Wrong guesses before the challenge locks
        reset_token_ttl: Lifetime of the reset token handed out on success
        clock: Returns the current UTC time
    """

    def __init__(
        self,
        store: CredentialStore,
        token_service: SessionTokenService,
        length: int = 5,
        ttl: timedelta = timedelta(minutes=3),
        max_attempts: int = 3,
        reset_token_ttl: timedelta = timedelta(minutes=15),
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.token_service = token_service
        self.length = length
        self.ttl = ttl
        self.max_attempts = max_attempts
        self.reset_token_ttl = reset_token_ttl
        self.clock = clock

    def generate_code(self) -> str:
        """Uniform over [10^(n-1), 10^n - 1], e.g. 10000..99999 for five digits."""
        low = 10 ** (self.length - 1)
        high = 10 ** self.length - 1
        return str(low + secrets.randbelow(high - low + 1))

    def check_format(self, submitted_code: str) -> str:
        """
        Reject codes that could never match before they cost an attempt.

        Raises:
            ValidationException: If the code is not exactly ``length`` digits
        """
        code = (submitted_code or "").strip()
        if len(code) != self.length or not code.isdigit():
            raise ValidationException(
                errors=[{"field": "otp", "message": f"Verification code must be exactly {self.length} digits"}]
            )
        return code

    def state(self, user: User) -> OtpState:
        if not user.otp_code:
            return OtpState.EMPTY
        if as_utc(user.otp_expires_at) is None or as_utc(user.otp_expires_at) < self.clock():
            return OtpState.EXPIRED
        if (user.otp_attempts or 0) >= self.max_attempts:
            return OtpState.LOCKED
        return OtpState.ISSUED

    def issue(self, user: User) -> IssuedOtp:
        """
        Issue a fresh code, replacing any previous challenge.

        Args:
            user: Account requesting the reset

        Returns:
            IssuedOtp: The code (for delivery) and its expiry

        Raises:
            NoPasswordCredentialException: If the account has no password
        """
        if not user.has_password:
            raise NoPasswordCredentialException()

        code = self.generate_code()
        expires_at = self.clock() + self.ttl
        self.store.set_otp_challenge(user, code, expires_at)
        logger.info(f"Password reset code issued for user {user.id}")
        return IssuedOtp(code=code, expires_at=expires_at)

    def verify(self, user: User, submitted_code: str) -> OtpVerification:
        """
        Check a submitted code against the user's challenge.

        Args:
            user: Account being reset
            submitted_code: Code entered by the user

        Returns:
            OtpVerification: Carries a short-lived token scoped to the
            password change

        Raises:
            ValidationException: The code has the wrong length or format
            NoChallengeException: No code is set (never issued or already used)
            OtpExpiredException: The code expired; the challenge is cleared
            TooManyAttemptsException: The attempt cap is reached
            OtpMismatchException: Wrong code; one attempt is used up
        """
        submitted_code = self.check_format(submitted_code)
        current_code = user.otp_code
        state = self.state(user)

        if state is OtpState.EMPTY:
            raise NoChallengeException()

        if state is OtpState.EXPIRED:
            self.store.clear_otp_challenge(user, expected_code=current_code)
            logger.info(f"Expired reset code cleared for user {user.id}")
            raise OtpExpiredException()

        if state is OtpState.LOCKED:
            raise TooManyAttemptsException()

        if not secrets.compare_digest(submitted_code, current_code):
            attempts = self.store.increment_otp_attempts(user, expected_code=current_code)
            if attempts is None:
                # Challenge was reissued or consumed while this request ran
                logger.info(f"Reset code for user {user.id} changed during verification")
                raise OtpMismatchException()
            logger.info(f"Wrong reset code for user {user.id} (attempt {attempts}/{self.max_attempts})")
            if attempts >= self.max_attempts:
                raise TooManyAttemptsException()
            raise OtpMismatchException()

        if not self.store.clear_otp_challenge(user, expected_code=current_code, max_attempts=self.max_attempts):
            # Lost a race: either consumed elsewhere or locked by parallel guesses
            if user.otp_code == current_code:
                raise TooManyAttemptsException()
            raise NoChallengeException()

        logger.info(f"Reset code verified for user {user.id}")
        reset_token = self.token_service.issue(
            user.id, expires_delta=self.reset_token_ttl, purpose=PASSWORD_RESET_PURPOSE
        )
        return OtpVerification(user=user, reset_token=reset_token)
