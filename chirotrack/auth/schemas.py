"""
Auth Schemas - Pydantic models for authentication requests and responses.

Request bodies and responses use camelCase field names.
"""
from datetime import datetime
from typing import Optional
import re

from pydantic import EmailStr, Field, ValidationInfo, field_validator

from ..core.responses import CamelModel
from .models import AuthProvider

PASSWORD_STRENGTH = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")
PASSWORD_STRENGTH_MESSAGE = (
    "Password must contain at least one uppercase letter, one lowercase letter, and one number"
)


def check_name(value: str, label: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValueError(f"{label} is required")
    if not 2 <= len(value) <= 50:
        raise ValueError(f"{label} must be between 2 and 50 characters")
    return value


def check_password_strength(value: str) -> str:
    if len(value) < 6:
        raise ValueError("Password must be at least 6 characters long")
    if not PASSWORD_STRENGTH.match(value):
        raise ValueError(PASSWORD_STRENGTH_MESSAGE)
    return value


class UserRegistration(CamelModel):
    """
    Registration Schema - Used when a practitioner signs up with a password

    Fields:
    - firstName / lastName: 2-50 characters after trimming
    - email: Valid email address
    - password: At least 6 characters with upper, lower and digit
    - confirmPassword: Must equal password
    """
    first_name: str
    last_name: str
    email: EmailStr
    password: str
    confirm_password: str

    @field_validator("first_name")
    @classmethod
    def validate_first_name(cls, v: str) -> str:
        return check_name(v, "First name")

    @field_validator("last_name")
    @classmethod
    def validate_last_name(cls, v: str) -> str:
        return check_name(v, "Last name")

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return check_password_strength(v)

    @field_validator("confirm_password")
    @classmethod
    def validate_confirm_password(cls, v: str, info: ValidationInfo) -> str:
        if "password" in info.data and v != info.data["password"]:
            raise ValueError("Password confirmation does not match password")
        return v


class UserLogin(CamelModel):
    email: EmailStr
    password: str

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if not v:
            raise ValueError("Password is required")
        return v


class GoogleSignInRequest(CamelModel):
    """The idToken is checked in the service so a missing one gets its own message."""
    id_token: Optional[str] = None


class ForgotPasswordRequest(CamelModel):
    email: EmailStr


class VerifyOtpRequest(CamelModel):
    """
    OTP Verification Schema

    Fields:
    - email: Account email
    - otp: Digits only; the length is checked against the configured
      code length when the code is verified
    """
    email: EmailStr
    otp: str

    @field_validator("otp")
    @classmethod
    def validate_otp(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Verification code is required")
        if not v.isdigit():
            raise ValueError("Verification code must contain only numbers")
        return v


class ResetPasswordRequest(CamelModel):
    """
    Password Reset Schema

    Fields:
    - email: Account email
    - resetToken: Token returned by verify-otp
    - newPassword / confirmPassword: The new password, twice
    """
    email: EmailStr
    reset_token: str = Field(..., min_length=1)
    new_password: str
    confirm_password: str

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        return check_password_strength(v)


class UserResponse(CamelModel):
    """
    User Response Schema - Public view of an account

    Never carries the password hash or the reset challenge.
    """
    id: int
    first_name: str
    last_name: str
    full_name: str
    email: str
    provider: AuthProvider
    has_password: bool
    is_email_verified: bool
    profile_picture: Optional[str] = None
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AuthPayload(CamelModel):
    user: UserResponse
    token: str


class OtpIssuedPayload(CamelModel):
    email: str
    expires_in: int


class OtpVerifiedPayload(CamelModel):
    reset_token: str
    email: str
