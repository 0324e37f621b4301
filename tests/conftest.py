"""
Test configuration for the ChiroTrack backend.

Every test gets a fresh in-memory database and an application built with a
fake federated verifier, a recording notifier and a controllable clock.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from chirotrack.auth.exceptions import FederatedVerificationError
from chirotrack.auth.federated import FederatedClaims
from chirotrack.auth.store import CredentialStore
from chirotrack.auth.tokens import SessionTokenService
from chirotrack.config import Settings
from chirotrack.core.notifier import DeliveryResult
from chirotrack.database import Base
from chirotrack.main import create_app

# Register every model on Base.metadata
from chirotrack.auth import models as _auth_models  # noqa: F401
from chirotrack.core import audit_models as _audit_models  # noqa: F401
from chirotrack.patients import models as _patient_models  # noqa: F401
from chirotrack.pose_detections import models as _pose_detection_models  # noqa: F401

TEST_SECRET = "test-secret-key-for-chirotrack"
STRONG_PASSWORD = "Secret123"


class FakeClock:
    """Clock whose time only moves when a test advances it."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime.now(timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeIdentityVerifier:
    """Accepts only tokens registered with ``add``."""

    def __init__(self):
        self.tokens: Dict[str, FederatedClaims] = {}
        self.calls = 0

    def add(self, token: str, claims: FederatedClaims) -> None:
        self.tokens[token] = claims

    def verify(self, raw_token: str) -> FederatedClaims:
        self.calls += 1
        try:
            return self.tokens[raw_token]
        except KeyError:
            raise FederatedVerificationError()


@dataclass
class RecordingNotifier:
    """Keeps every message instead of sending it."""
    fail: bool = False
    sent: List[tuple] = field(default_factory=list)

    def deliver(self, destination: str, code: str) -> DeliveryResult:
        if self.fail:
            return DeliveryResult(delivered=False, error="SMTP unavailable")
        self.sent.append((destination, code))
        return DeliveryResult(delivered=True, message_id=f"<{len(self.sent)}@test>")

    def last_code_for(self, destination: str) -> str:
        for sent_to, code in reversed(self.sent):
            if sent_to == destination:
                return code
        raise AssertionError(f"No code sent to {destination}")


@pytest.fixture(scope="function")
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db(session_factory):
    """
    A database session for tests that work below the HTTP layer.
    """
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def settings():
    return Settings(secret_key=TEST_SECRET, tolerate_delivery_failure=True, _env_file=None)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def identity_verifier():
    return FakeIdentityVerifier()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def token_service(settings):
    return SessionTokenService(settings.secret_key, algorithm=settings.algorithm)


@pytest.fixture
def store(db):
    return CredentialStore(db)


@pytest.fixture(scope="function")
def app(settings, session_factory, identity_verifier, notifier, clock):
    return create_app(
        settings,
        session_factory=session_factory,
        identity_verifier=identity_verifier,
        notifier=notifier,
        clock=clock,
    )


@pytest.fixture(scope="function")
def client(app):
    """
    Create a test client bound to the test application.
    """
    with TestClient(app) as client:
        yield client


class ApiHelper:
    """Shortcuts for the requests most tests start with."""

    def __init__(self, client: TestClient):
        self.client = client

    @staticmethod
    def auth_header(token: str) -> dict:
        return {"Authorization": f"Bearer {token}"}

    def register(self, email="jane.doe@example.com", password=STRONG_PASSWORD, first_name="Jane", last_name="Doe"):
        return self.client.post(
            "/api/auth/register",
            json={
                "firstName": first_name,
                "lastName": last_name,
                "email": email,
                "password": password,
                "confirmPassword": password,
            },
        )

    def login(self, email="jane.doe@example.com", password=STRONG_PASSWORD):
        return self.client.post("/api/auth/login", json={"email": email, "password": password})

    def signup_token(self, email: str, first_name="Jane", last_name="Doe") -> str:
        response = self.register(email=email, first_name=first_name, last_name=last_name)
        assert response.status_code == 201, response.text
        return response.json()["data"]["token"]


@pytest.fixture
def api(client):
    return ApiHelper(client)


@pytest.fixture
def registered(api):
    """A registered local account: returns (user payload, session token)."""
    response = api.register()
    assert response.status_code == 201, response.text
    data = response.json()["data"]
    return data["user"], data["token"]
