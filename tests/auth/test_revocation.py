"""
Tests for the revocation ledger.
"""
from datetime import timedelta

from chirotrack.auth.models import AuthProvider, RevokedToken
from chirotrack.auth.revocation import RevocationLedger
from chirotrack.core.security import hash_password


def make_user(store, email="ledger@example.com"):
    return store.create(
        first_name="Led",
        last_name="Ger",
        email=email,
        password_hash=hash_password("Secret123"),
        provider=AuthProvider.LOCAL,
    )


def test_revoked_token_is_reported(db, store, clock, token_service):
    user = make_user(store)
    ledger = RevocationLedger(db, clock=clock)
    token = token_service.issue(user.id)

    assert not ledger.is_revoked(token)
    assert ledger.revoke(token, user.id, clock() + timedelta(days=7))
    assert ledger.is_revoked(token)


def test_revoking_twice_is_a_no_op(db, store, clock, token_service):
    user = make_user(store)
    ledger = RevocationLedger(db, clock=clock)
    token = token_service.issue(user.id)

    assert ledger.revoke(token, user.id, clock() + timedelta(days=7))
    assert not ledger.revoke(token, user.id, clock() + timedelta(days=7))
    assert db.query(RevokedToken).count() == 1


def test_ledger_stores_only_a_hash(db, store, clock, token_service):
    user = make_user(store)
    token = token_service.issue(user.id)
    RevocationLedger(db, clock=clock).revoke(token, user.id, clock() + timedelta(days=1))

    entry = db.query(RevokedToken).one()
    assert entry.token_hash != token
    assert len(entry.token_hash) == 64


def test_expired_entries_are_purged(db, store, clock, token_service):
    user = make_user(store)
    ledger = RevocationLedger(db, clock=clock)
    ledger.revoke(token_service.issue(user.id), user.id, clock() + timedelta(hours=1))
    keep = token_service.issue(user.id)
    ledger.revoke(keep, user.id, clock() + timedelta(days=2))

    clock.advance(hours=2)
    assert not ledger.is_revoked(token_service.issue(user.id))

    assert db.query(RevokedToken).count() == 1
    assert ledger.is_revoked(keep)
