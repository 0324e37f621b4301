"""
Federated identity verification through Firebase Authentication.

Token signatures are checked by firebase-admin against Google's published
keys; this module only maps the result to ``FederatedClaims``.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol
import json
import logging

import firebase_admin
from firebase_admin import auth as firebase_auth, credentials
from firebase_admin import exceptions as firebase_exceptions

from ..config import Settings
from .exceptions import FederatedVerificationError

logger = logging.getLogger(__name__)

FIREBASE_APP_NAME = "chirotrack"


@dataclass(frozen=True)
class FederatedClaims:
    subject_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    email_verified: bool = False
    picture_url: Optional[str] = None


class IdentityVerifier(Protocol):
    def verify(self, raw_token: str) -> FederatedClaims: ...


class UnconfiguredIdentityVerifier:
    """
    Stand-in when no Firebase service account is configured.

    Every token is rejected, so the resolver falls through to local
    session verification.
    """

    def verify(self, raw_token: str) -> FederatedClaims:
        raise FederatedVerificationError("Federated sign-in is not configured")


class FirebaseIdentityVerifier:
    """
    Verifies Firebase ID tokens with a dedicated, explicitly configured app.

    Args:
        settings: Application settings carrying the service account
    """

    def __init__(self, settings: Settings):
        self._app = self._initialize_app(settings)

    @staticmethod
    def _load_service_account(settings: Settings) -> dict:
        if settings.firebase_service_account_json:
            logger.info("Using Firebase service account from environment variable")
            return json.loads(settings.firebase_service_account_json)

        path = Path(settings.firebase_service_account_path)
        if not path.is_file():
            raise FileNotFoundError(f"Firebase service account JSON not found: {path}")
        logger.info(f"Using Firebase service account from {path}")
        return json.loads(path.read_text(encoding="utf-8"))

    def _initialize_app(self, settings: Settings):
        try:
            return firebase_admin.get_app(FIREBASE_APP_NAME)
        except ValueError:
            pass

        service_account = self._load_service_account(settings)
        project_id = service_account.get("project_id") or settings.firebase_project_id
        app = firebase_admin.initialize_app(
            credentials.Certificate(service_account),
            options={"projectId": project_id},
            name=FIREBASE_APP_NAME,
        )
        logger.info("Firebase Admin SDK initialized successfully")
        return app

    def verify(self, raw_token: str) -> FederatedClaims:
        """
        Verify a Firebase ID token.

        Args:
            raw_token: The bearer value

        Returns:
            FederatedClaims: Subject and profile claims

        Raises:
            FederatedVerificationError: If the token is malformed, expired,
                revoked or not issued for this project
        """
        try:
            decoded = firebase_auth.verify_id_token(raw_token, app=self._app)
        except (ValueError, firebase_exceptions.FirebaseError) as e:
            raise FederatedVerificationError() from e

        return FederatedClaims(
            subject_id=decoded["uid"],
            email=decoded.get("email"),
            name=decoded.get("name"),
            email_verified=bool(decoded.get("email_verified", False)),
            picture_url=decoded.get("picture"),
        )


def create_identity_verifier(settings: Settings) -> IdentityVerifier:
    """
    Build the verifier for process startup.
    """
    if settings.firebase_service_account_json or settings.firebase_service_account_path:
        return FirebaseIdentityVerifier(settings)
    logger.warning("Firebase is not configured; federated sign-in is disabled")
    return UnconfiguredIdentityVerifier()
