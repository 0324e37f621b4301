"""
Identity resolution for bearer credentials.

A bearer value is either a federated identity token or a local session
token. Verifiers are tried in order and the first success wins; if none
succeeds the caller gets one uniform 401 whichever verifier failed.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Sequence
import logging

from sqlalchemy.exc import IntegrityError
from starlette.concurrency import run_in_threadpool

from ..exceptions import AppException
from .exceptions import (
    FederatedVerificationError,
    InvalidTokenException,
    MissingCredentialException,
    TokenRevokedException,
    TokenUserNotFoundException,
    UnauthenticatedException,
)
from .federated import FederatedClaims, IdentityVerifier
from .models import AuthProvider, User
from .revocation import RevocationLedger
from .store import CredentialStore
from .tokens import SessionClaims, SessionTokenService
from .utils import normalize_email, split_display_name

logger = logging.getLogger(__name__)

AUTH_METHOD_FEDERATED = "federated"
AUTH_METHOD_LOCAL = "local"


def extract_bearer_token(authorization: Optional[str]) -> str:
    """
    Pull the credential out of an ``Authorization: Bearer <value>`` header.

    Raises:
        MissingCredentialException: If the header is absent, uses another
            scheme, or carries an empty value
    """
    if not authorization:
        raise MissingCredentialException()
    scheme, _, value = authorization.partition(" ")
    if scheme != "Bearer" or not value.strip():
        raise MissingCredentialException()
    return value.strip()


@dataclass(frozen=True)
class ResolvedIdentity:
    user: User
    method: str
    federated_claims: Optional[FederatedClaims] = None
    session_claims: Optional[SessionClaims] = None


def provision_federated_user(store: CredentialStore, claims: FederatedClaims) -> User:
    """
    Find or create the account for a verified federated identity.

    Lookup is by subject id. An unknown subject whose email already belongs
    to a local account is linked to that account, but only when the
    provider vouches for the email. Otherwise a new federated account is
    created with names taken from the display name.

    Raises:
        FederatedVerificationError: If the claims carry no email, or the email
            is owned by another account and not verified by the provider
    """
    user = store.find_by_subject_id(claims.subject_id)
    if user is not None:
        return user

    email = normalize_email(claims.email)
    if not email:
        raise FederatedVerificationError("Federated identity has no email address")

    existing = store.find_by_email(email)
    if existing is not None:
        if existing.firebase_uid or not claims.email_verified:
            logger.warning(f"Refusing to link federated subject to account {existing.id}")
            raise FederatedVerificationError("Email is already registered with another sign-in method")
        existing.firebase_uid = claims.subject_id
        existing.google_uid = existing.google_uid or claims.subject_id
        existing.is_email_verified = True
        if claims.picture_url and not existing.profile_picture:
            existing.profile_picture = claims.picture_url
        store.save(existing)
        logger.info(f"Linked federated subject to existing account {existing.id}")
        return existing

    first_name, last_name = split_display_name(claims.name)
    try:
        return store.create(
            first_name=first_name[:50],
            last_name=last_name[:50],
            email=email,
            firebase_uid=claims.subject_id,
            google_uid=claims.subject_id,
            provider=AuthProvider.FEDERATED,
            is_email_verified=claims.email_verified,
            profile_picture=claims.picture_url,
        )
    except IntegrityError:
        # A concurrent first sign-in for the same subject won the insert
        user = store.find_by_subject_id(claims.subject_id)
        if user is None:
            raise
        return user


class FederatedCredentialVerifier:
    """Accepts identity tokens signed by the federated provider."""

    method = AUTH_METHOD_FEDERATED

    def __init__(self, identity_verifier: IdentityVerifier):
        self.identity_verifier = identity_verifier

    async def attempt(self, credential: str, store: CredentialStore) -> ResolvedIdentity:
        claims = await run_in_threadpool(self.identity_verifier.verify, credential)
        user = provision_federated_user(store, claims)
        return ResolvedIdentity(user=user, method=self.method, federated_claims=claims)


class LocalSessionVerifier:
    """Accepts session tokens issued by this service that were not revoked."""

    method = AUTH_METHOD_LOCAL

    def __init__(self, token_service: SessionTokenService, ledger: RevocationLedger):
        self.token_service = token_service
        self.ledger = ledger

    async def attempt(self, credential: str, store: CredentialStore) -> ResolvedIdentity:
        if self.ledger.is_revoked(credential):
            raise TokenRevokedException()
        claims = self.token_service.verify(credential)
        if claims.purpose is not None:
            raise InvalidTokenException("Token is not a session token")
        user = store.find_by_id(claims.user_id)
        if user is None:
            raise TokenUserNotFoundException()
        return ResolvedIdentity(user=user, method=self.method, session_claims=claims)


@dataclass
class IdentityResolver:
    """
    Runs the verifier chain against a bearer header.

    Args:
        store: Credential store used for user lookups
        verifiers: Verifiers in the order they are tried
    """

    store: CredentialStore
    verifiers: Sequence = field(default_factory=list)

    async def resolve(self, authorization: Optional[str]) -> ResolvedIdentity:
        """
        Authenticate a request from its Authorization header.

        Raises:
            MissingCredentialException: No bearer credential present
            UnauthenticatedException: Every verifier rejected the credential
        """
        credential = extract_bearer_token(authorization)
        failures: List[str] = []

        for verifier in self.verifiers:
            try:
                return await verifier.attempt(credential, self.store)
            except AppException as e:
                failures.append(f"{verifier.method}: {e.message}")
            except Exception as e:
                logger.exception(f"Unexpected error in {verifier.method} verifier")
                failures.append(f"{verifier.method}: {type(e).__name__}")

        logger.info(f"Authentication failed ({'; '.join(failures)})")
        raise UnauthenticatedException()

    async def resolve_optional(self, authorization: Optional[str]) -> Optional[ResolvedIdentity]:
        """Like ``resolve`` but returns None instead of raising."""
        if not authorization:
            return None
        try:
            return await self.resolve(authorization)
        except AppException:
            return None
