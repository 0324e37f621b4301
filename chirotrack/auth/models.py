"""
User Model - Stores practitioner accounts and the embedded password-reset challenge.

An account authenticates with a local password, a federated (Firebase) subject,
or both. Revoked session tokens live in their own table until they expire.
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, ForeignKey, CheckConstraint
from sqlalchemy.sql import func
import enum

from ..database import Base


class AuthProvider(str, enum.Enum):
    """
    Enumeration for how an account was first created.

    Providers:
    - LOCAL: Registered with email and password
    - FEDERATED: Auto-provisioned on first federated sign-in
    """
    LOCAL = "local"
    FEDERATED = "federated"


class User(Base):
    """
    User Model - Stores all user identity information

    Fields:
    - id: Primary key for user identification
    - first_name / last_name: Display name parts
    - email: Normalized, unique email address
    - password_hash: bcrypt hash (absent for federated-only accounts)
    - firebase_uid: Federated subject id (unique when present)
    - google_uid: Alternate federated id (unique when present)
    - provider: How the account was created
    - last_login: Timestamp of the last successful sign-in
    - is_email_verified: Whether the email was verified by the identity provider
    - profile_picture: URL of the profile image (optional)
    - otp_code / otp_expires_at / otp_attempts: Password-reset challenge
    - created_at / updated_at: Record timestamps
    """
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "password_hash IS NOT NULL OR firebase_uid IS NOT NULL",
            name="ck_users_has_credential",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False, default="")
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=True)
    firebase_uid = Column(String, unique=True, index=True, nullable=True)
    google_uid = Column(String, unique=True, index=True, nullable=True)
    provider = Column(Enum(AuthProvider), nullable=False, default=AuthProvider.LOCAL)
    last_login = Column(DateTime(timezone=True), nullable=True)
    is_email_verified = Column(Boolean, nullable=False, default=False)
    profile_picture = Column(String, nullable=True)

    # Password-reset challenge
    otp_code = Column(String(10), nullable=True)
    otp_expires_at = Column(DateTime(timezone=True), nullable=True)
    otp_attempts = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def has_password(self) -> bool:
        return bool(self.password_hash)

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', provider='{self.provider}')>"


class RevokedToken(Base):
    """
    Revoked session token, kept only until the token would have expired anyway.

    Fields:
    - token_hash: SHA-256 of the token (unique)
    - user_id: Owner of the token
    - expires_at: Copied from the token's own exp claim
    - revoked_at: When the token was revoked
    """
    __tablename__ = "revoked_tokens"

    id = Column(Integer, primary_key=True)
    token_hash = Column(String(64), unique=True, index=True, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    expires_at = Column(DateTime(timezone=True), index=True, nullable=False)
    revoked_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<RevokedToken(user_id={self.user_id}, expires_at='{self.expires_at}')>"
