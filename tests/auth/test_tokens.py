"""
Tests for session token issuance and verification.
"""
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from chirotrack.auth.exceptions import InvalidTokenException
from chirotrack.auth.tokens import PASSWORD_RESET_PURPOSE, SessionTokenService


def test_issue_and_verify_round_trip(token_service):
    token = token_service.issue(7)
    claims = token_service.verify(token)

    assert claims.user_id == 7
    assert claims.token_id
    remaining = claims.expires_at - datetime.now(timezone.utc)
    assert timedelta(days=6, hours=23) < remaining <= timedelta(days=7)


def test_tokens_for_same_user_are_distinct(token_service):
    assert token_service.issue(1) != token_service.issue(1)


def test_expired_token_is_rejected(token_service):
    token = token_service.issue(1, expires_delta=timedelta(seconds=-5))
    with pytest.raises(InvalidTokenException):
        token_service.verify(token)


def test_token_signed_with_other_secret_is_rejected(token_service):
    other = SessionTokenService("another-secret")
    with pytest.raises(InvalidTokenException):
        token_service.verify(other.issue(1))


def test_garbage_is_rejected(token_service):
    with pytest.raises(InvalidTokenException):
        token_service.verify("not-a-jwt")


def test_token_without_user_id_is_rejected(token_service, settings):
    exp = int((datetime.now(timezone.utc) + timedelta(hours=1)).timestamp())
    token = jwt.encode({"exp": exp}, settings.secret_key, algorithm="HS256")
    with pytest.raises(InvalidTokenException):
        token_service.verify(token)


def test_purpose_claim_round_trip(token_service):
    claims = token_service.verify(token_service.issue(3, purpose=PASSWORD_RESET_PURPOSE))

    assert claims.purpose == PASSWORD_RESET_PURPOSE
    assert token_service.verify(token_service.issue(3)).purpose is None
