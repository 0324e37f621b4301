"""
Tests for the password-reset code engine.
"""
from datetime import datetime, timedelta, timezone

import pytest

from chirotrack.auth.exceptions import (
    NoChallengeException,
    NoPasswordCredentialException,
    OtpExpiredException,
    OtpMismatchException,
    TooManyAttemptsException,
)
from chirotrack.auth.models import AuthProvider
from chirotrack.auth.otp import OtpChallengeEngine, OtpState
from chirotrack.auth.tokens import PASSWORD_RESET_PURPOSE
from chirotrack.core.security import hash_password
from chirotrack.exceptions import ValidationException


@pytest.fixture
def engine_(store, token_service, clock):
    return OtpChallengeEngine(store, token_service, clock=clock)


@pytest.fixture
def user(store):
    return store.create(
        first_name="Rita",
        last_name="Reset",
        email="rita@example.com",
        password_hash=hash_password("Secret123"),
        provider=AuthProvider.LOCAL,
    )


def wrong_code(code: str) -> str:
    return "10000" if code != "10000" else "10001"


def test_generated_codes_are_five_digits(engine_):
    for _ in range(200):
        code = engine_.generate_code()
        assert len(code) == 5
        assert 10000 <= int(code) <= 99999


def test_issue_stores_challenge(engine_, user, clock):
    issued = engine_.issue(user)

    assert user.otp_code == issued.code
    assert user.otp_attempts == 0
    assert issued.expires_at == clock() + timedelta(seconds=180)
    assert engine_.state(user) == OtpState.ISSUED


def test_correct_code_consumes_challenge(engine_, user, token_service):
    issued = engine_.issue(user)

    result = engine_.verify(user, issued.code)

    claims = token_service.verify(result.reset_token)
    assert claims.user_id == user.id
    assert claims.purpose == PASSWORD_RESET_PURPOSE
    assert claims.expires_at - datetime.now(timezone.utc) <= timedelta(minutes=15)
    assert user.otp_code is None
    assert engine_.state(user) == OtpState.EMPTY
    with pytest.raises(NoChallengeException):
        engine_.verify(user, issued.code)


def test_verify_without_challenge(engine_, user):
    with pytest.raises(NoChallengeException):
        engine_.verify(user, "12345")


def test_third_wrong_attempt_locks(engine_, user):
    issued = engine_.issue(user)
    bad = wrong_code(issued.code)

    with pytest.raises(OtpMismatchException):
        engine_.verify(user, bad)
    with pytest.raises(OtpMismatchException):
        engine_.verify(user, bad)
    with pytest.raises(TooManyAttemptsException):
        engine_.verify(user, bad)

    assert user.otp_attempts == 3
    assert engine_.state(user) == OtpState.LOCKED
    # Even the right code is refused once locked
    with pytest.raises(TooManyAttemptsException):
        engine_.verify(user, issued.code)


def test_code_expires(engine_, user, clock):
    issued = engine_.issue(user)
    clock.advance(seconds=181)

    assert engine_.state(user) == OtpState.EXPIRED
    with pytest.raises(OtpExpiredException):
        engine_.verify(user, issued.code)
    assert user.otp_code is None


def test_code_still_valid_just_before_expiry(engine_, user, clock):
    issued = engine_.issue(user)
    clock.advance(seconds=179)

    engine_.verify(user, issued.code)


def test_reissue_resets_attempts_and_replaces_code(engine_, user):
    first = engine_.issue(user)
    bad = wrong_code(first.code)
    for _ in range(2):
        with pytest.raises(OtpMismatchException):
            engine_.verify(user, bad)

    second = engine_.issue(user)

    assert user.otp_attempts == 0
    assert user.otp_code == second.code
    engine_.verify(user, second.code)


def test_issue_refused_for_federated_only_account(engine_, store):
    federated = store.create(
        first_name="Fed",
        last_name="",
        email="fed@example.com",
        firebase_uid="firebase-subject-1",
        provider=AuthProvider.FEDERATED,
    )
    with pytest.raises(NoPasswordCredentialException):
        engine_.issue(federated)


def test_attempt_counter_is_atomic_against_stale_reads(engine_, user, store, db):
    issued = engine_.issue(user)
    bad = wrong_code(issued.code)

    # Another request bumps the counter behind this object's back
    assert store.increment_otp_attempts(user, expected_code=issued.code) == 1
    db.expire(user)

    with pytest.raises(OtpMismatchException):
        engine_.verify(user, bad)
    assert user.otp_attempts == 2


def test_stale_code_does_not_count_against_new_challenge(engine_, user, store):
    first = engine_.issue(user)
    engine_.issue(user)

    assert store.increment_otp_attempts(user, expected_code=first.code) is None
    assert user.otp_attempts == 0


def test_code_length_follows_configuration(store, token_service, clock, user):
    engine_ = OtpChallengeEngine(store, token_service, length=6, clock=clock)

    issued = engine_.issue(user)

    assert len(issued.code) == 6
    assert engine_.verify(user, issued.code).reset_token


def test_wrong_length_code_costs_no_attempt(engine_, user):
    engine_.issue(user)

    with pytest.raises(ValidationException) as exc_info:
        engine_.verify(user, "123456")

    assert exc_info.value.errors[0]["field"] == "otp"
    assert user.otp_attempts == 0
