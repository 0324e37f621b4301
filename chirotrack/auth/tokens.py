"""
Session token issuance and verification.

Session tokens are self-contained HS256 JWTs carrying the user id and an
expiry. Any process holding the signing secret can verify them; the only
server-side state is the revocation ledger.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
import logging
import uuid

from jose import jwt, JWTError

from .exceptions import InvalidTokenException

logger = logging.getLogger(__name__)

PASSWORD_RESET_PURPOSE = "password_reset"


@dataclass(frozen=True)
class SessionClaims:
    user_id: int
    expires_at: datetime
    token_id: Optional[str] = None
    purpose: Optional[str] = None


class SessionTokenService:
    """
    Issues and verifies local session tokens.

    Args:
        secret_key: Signing secret
        algorithm: JWT algorithm (HS256)
        expires_delta: Default token lifetime
    """

    def __init__(self, secret_key: str, algorithm: str = "HS256", expires_delta: timedelta = timedelta(days=7)):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expires_delta = expires_delta

    def issue(
        self,
        user_id: int,
        expires_delta: Optional[timedelta] = None,
        purpose: Optional[str] = None
    ) -> str:
        """
        Create a signed token for a user.

        Args:
            user_id: Id embedded in the token
            expires_delta: Lifetime override
            purpose: Restricts the token to one use, e.g. ``password_reset``;
                session tokens carry none

        Returns:
            str: Encoded JWT
        """
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta if expires_delta is not None else self.expires_delta)
        to_encode = {
            "id": user_id,
            "iat": int(now.timestamp()),
            "exp": int(expire.timestamp()),
            "jti": uuid.uuid4().hex,
        }
        if purpose:
            to_encode["purpose"] = purpose
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> SessionClaims:
        """
        Verify a session token's signature and expiry.

        Args:
            token: Encoded JWT

        Returns:
            SessionClaims: The embedded user id, expiry and purpose

        Raises:
            InvalidTokenException: If the token is malformed, badly signed,
                expired, or carries no user id
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError as e:
            raise InvalidTokenException() from e

        user_id = payload.get("id")
        exp = payload.get("exp")
        if user_id is None or exp is None:
            raise InvalidTokenException("Invalid token payload")
        try:
            return SessionClaims(
                user_id=int(user_id),
                expires_at=datetime.fromtimestamp(int(exp), tz=timezone.utc),
                token_id=payload.get("jti"),
                purpose=payload.get("purpose"),
            )
        except (TypeError, ValueError) as e:
            raise InvalidTokenException("Invalid token payload") from e
