"""
FastAPI dependencies for authentication.

Every collaborator comes from ``request.app.state``, set up once by the
application factory. Per-request objects share the request's database
session.
"""
from datetime import timedelta
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from ..database import get_db
from .models import User
from .otp import OtpChallengeEngine
from .resolver import (
    FederatedCredentialVerifier,
    IdentityResolver,
    LocalSessionVerifier,
)
from .revocation import RevocationLedger
from .store import CredentialStore
from .tokens import SessionTokenService


def get_token_service(request: Request) -> SessionTokenService:
    return request.app.state.token_service


def get_credential_store(db: Session = Depends(get_db)) -> CredentialStore:
    return CredentialStore(db)


def get_revocation_ledger(request: Request, db: Session = Depends(get_db)) -> RevocationLedger:
    return RevocationLedger(db, clock=request.app.state.clock)


def get_otp_engine(
    request: Request,
    store: CredentialStore = Depends(get_credential_store),
    token_service: SessionTokenService = Depends(get_token_service),
) -> OtpChallengeEngine:
    settings = request.app.state.settings
    return OtpChallengeEngine(
        store,
        token_service,
        length=settings.otp_length,
        ttl=timedelta(seconds=settings.otp_expire_seconds),
        max_attempts=settings.otp_max_attempts,
        reset_token_ttl=timedelta(minutes=settings.reset_token_expire_minutes),
        clock=request.app.state.clock,
    )


def get_identity_resolver(
    request: Request,
    store: CredentialStore = Depends(get_credential_store),
    ledger: RevocationLedger = Depends(get_revocation_ledger),
    token_service: SessionTokenService = Depends(get_token_service),
) -> IdentityResolver:
    return IdentityResolver(
        store=store,
        verifiers=[
            FederatedCredentialVerifier(request.app.state.identity_verifier),
            LocalSessionVerifier(token_service, ledger),
        ],
    )


async def get_current_user(
    request: Request,
    resolver: IdentityResolver = Depends(get_identity_resolver),
) -> User:
    """
    Authenticate the request and return the user.

    Also attaches ``user``, ``auth_method`` and, for federated tokens,
    ``federated_claims`` to ``request.state``.

    Raises:
        MissingCredentialException: No bearer credential
        UnauthenticatedException: The credential was rejected
    """
    identity = await resolver.resolve(request.headers.get("Authorization"))
    request.state.user = identity.user
    request.state.auth_method = identity.method
    request.state.federated_claims = identity.federated_claims
    return identity.user


async def get_optional_current_user(
    request: Request,
    resolver: IdentityResolver = Depends(get_identity_resolver),
) -> Optional[User]:
    """Same as ``get_current_user`` but anonymous requests get None."""
    identity = await resolver.resolve_optional(request.headers.get("Authorization"))
    if identity is None:
        return None
    request.state.user = identity.user
    request.state.auth_method = identity.method
    request.state.federated_claims = identity.federated_claims
    return identity.user
