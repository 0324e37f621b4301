"""
Tests for bearer credential resolution.
"""
import asyncio
from datetime import timedelta

import pytest
from fastapi import Depends

from chirotrack.auth.dependencies import get_optional_current_user
from chirotrack.auth.exceptions import (
    FederatedVerificationError,
    MissingCredentialException,
    UnauthenticatedException,
)
from chirotrack.auth.federated import FederatedClaims
from chirotrack.auth.models import AuthProvider, User
from chirotrack.auth.resolver import (
    AUTH_METHOD_FEDERATED,
    AUTH_METHOD_LOCAL,
    FederatedCredentialVerifier,
    IdentityResolver,
    LocalSessionVerifier,
    extract_bearer_token,
    provision_federated_user,
)
from chirotrack.auth.revocation import RevocationLedger
from chirotrack.auth.tokens import PASSWORD_RESET_PURPOSE
from chirotrack.core.security import hash_password


@pytest.fixture
def ledger(db, clock):
    return RevocationLedger(db, clock=clock)


@pytest.fixture
def resolver(store, identity_verifier, token_service, ledger):
    return IdentityResolver(
        store=store,
        verifiers=[
            FederatedCredentialVerifier(identity_verifier),
            LocalSessionVerifier(token_service, ledger),
        ],
    )


@pytest.fixture
def local_user(store):
    return store.create(
        first_name="Lou",
        last_name="Local",
        email="lou.local@gmail.com",
        password_hash=hash_password("Secret123"),
        provider=AuthProvider.LOCAL,
    )


@pytest.mark.parametrize("header", [None, "", "Basic abc", "Bearer", "Bearer   ", "bearer abc"])
def test_extract_bearer_token_rejects(header):
    with pytest.raises(MissingCredentialException):
        extract_bearer_token(header)


def test_extract_bearer_token():
    assert extract_bearer_token("Bearer abc.def") == "abc.def"


def test_local_token_resolves(resolver, local_user, token_service):
    token = token_service.issue(local_user.id)

    identity = asyncio.run(resolver.resolve(f"Bearer {token}"))

    assert identity.user.id == local_user.id
    assert identity.method == AUTH_METHOD_LOCAL
    assert identity.federated_claims is None


def test_federated_token_provisions_account(resolver, identity_verifier, store):
    identity_verifier.add(
        "fed-token",
        FederatedClaims(
            subject_id="uid-123",
            email="New.Person@Gmail.com",
            name="New Person Smith",
            email_verified=True,
            picture_url="https://example.com/p.png",
        ),
    )

    identity = asyncio.run(resolver.resolve("Bearer fed-token"))

    user = identity.user
    assert identity.method == AUTH_METHOD_FEDERATED
    assert user.email == "newperson@gmail.com"
    assert (user.first_name, user.last_name) == ("New", "Person Smith")
    assert user.provider == AuthProvider.FEDERATED
    assert user.firebase_uid == "uid-123"
    assert user.password_hash is None
    assert user.is_email_verified

    # Second sign-in finds the same account
    again = asyncio.run(resolver.resolve("Bearer fed-token"))
    assert again.user.id == user.id
    assert store.db.query(User).count() == 1


def test_verified_federated_email_links_local_account(resolver, identity_verifier, local_user):
    identity_verifier.add(
        "link-token",
        FederatedClaims(subject_id="uid-link", email="LouLocal@gmail.com", name="Lou", email_verified=True),
    )

    identity = asyncio.run(resolver.resolve("Bearer link-token"))

    assert identity.user.id == local_user.id
    assert identity.user.firebase_uid == "uid-link"
    assert identity.user.has_password
    assert identity.user.provider == AuthProvider.LOCAL


def test_unverified_federated_email_does_not_link(store, local_user):
    claims = FederatedClaims(subject_id="uid-x", email="lou.local@gmail.com", email_verified=False)

    with pytest.raises(FederatedVerificationError):
        provision_federated_user(store, claims)
    assert local_user.firebase_uid is None


def test_revoked_local_token_is_rejected(resolver, local_user, token_service, ledger, clock):
    token = token_service.issue(local_user.id)
    ledger.revoke(token, local_user.id, clock() + timedelta(days=7))

    with pytest.raises(UnauthenticatedException) as exc_info:
        asyncio.run(resolver.resolve(f"Bearer {token}"))
    assert exc_info.value.message == "Invalid token or token expired."


def test_reset_token_is_not_a_session(resolver, local_user, token_service):
    token = token_service.issue(local_user.id, purpose=PASSWORD_RESET_PURPOSE)

    with pytest.raises(UnauthenticatedException):
        asyncio.run(resolver.resolve(f"Bearer {token}"))


def test_token_of_deleted_user_is_rejected(resolver, token_service):
    with pytest.raises(UnauthenticatedException):
        asyncio.run(resolver.resolve(f"Bearer {token_service.issue(9999)}"))


def test_unknown_token_fails_uniformly(resolver, identity_verifier):
    with pytest.raises(UnauthenticatedException):
        asyncio.run(resolver.resolve("Bearer garbage"))
    assert identity_verifier.calls == 1


def test_unexpected_verifier_fault_falls_through(store, token_service, ledger, local_user):
    class BrokenVerifier:
        def verify(self, raw_token):
            raise RuntimeError("provider down")

    resolver = IdentityResolver(
        store=store,
        verifiers=[FederatedCredentialVerifier(BrokenVerifier()), LocalSessionVerifier(token_service, ledger)],
    )
    token = token_service.issue(local_user.id)

    identity = asyncio.run(resolver.resolve(f"Bearer {token}"))
    assert identity.method == AUTH_METHOD_LOCAL


def test_resolve_optional_returns_none(resolver):
    assert asyncio.run(resolver.resolve_optional(None)) is None
    assert asyncio.run(resolver.resolve_optional("Bearer garbage")) is None


def test_optional_user_dependency(app, client, api, registered):
    @app.get("/whoami")
    async def whoami(user=Depends(get_optional_current_user)):
        return {"email": user.email if user else None}

    _, token = registered
    assert client.get("/whoami").json() == {"email": None}
    assert client.get("/whoami", headers=api.auth_header("garbage")).json() == {"email": None}
    assert client.get("/whoami", headers=api.auth_header(token)).json() == {"email": "jane.doe@example.com"}
