"""
Authentication routes for ChiroTrack.
"""
from fastapi import APIRouter, Depends, Request, status
import logging

from ..core.responses import success_response
from .dependencies import (
    get_credential_store,
    get_current_user,
    get_otp_engine,
    get_revocation_ledger,
    get_token_service,
)
from .models import User
from .otp import OtpChallengeEngine
from .resolver import extract_bearer_token
from .revocation import RevocationLedger
from .schemas import (
    AuthPayload,
    ForgotPasswordRequest,
    GoogleSignInRequest,
    OtpIssuedPayload,
    OtpVerifiedPayload,
    ResetPasswordRequest,
    UserLogin,
    UserRegistration,
    UserResponse,
    VerifyOtpRequest,
)
from .service import (
    google_sign_in,
    login_user,
    logout_user,
    register_user,
    request_password_reset,
    reset_password,
    verify_reset_code,
)
from .store import CredentialStore
from .tokens import SessionTokenService

# Set up logging
logger = logging.getLogger(__name__)

# Create API router
router = APIRouter(prefix="/api/auth", tags=["Authentication"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    data: UserRegistration,
    request: Request,
    store: CredentialStore = Depends(get_credential_store),
    token_service: SessionTokenService = Depends(get_token_service),
):
    """
    Register a new account with email and password.
    """
    result = await register_user(store, token_service, data, request)
    return success_response("User registered successfully", AuthPayload(**result))


@router.post("/login")
async def login(
    data: UserLogin,
    request: Request,
    store: CredentialStore = Depends(get_credential_store),
    token_service: SessionTokenService = Depends(get_token_service),
):
    """
    Log in with email and password.
    """
    result = await login_user(store, token_service, data.email, data.password, request)
    return success_response("Login successful", AuthPayload(**result))


@router.post("/google-signin")
async def google_signin(
    data: GoogleSignInRequest,
    request: Request,
    store: CredentialStore = Depends(get_credential_store),
    token_service: SessionTokenService = Depends(get_token_service),
):
    """
    Sign in with a Google (Firebase) ID token.
    """
    result = await google_sign_in(
        store, request.app.state.identity_verifier, token_service, data.id_token, request
    )
    return success_response("Google sign-in successful", AuthPayload(**result))


@router.post("/logout")
async def logout(
    request: Request,
    current_user: User = Depends(get_current_user),
    ledger: RevocationLedger = Depends(get_revocation_ledger),
    token_service: SessionTokenService = Depends(get_token_service),
):
    """
    Log out, revoking the presented session token.
    """
    raw_token = extract_bearer_token(request.headers.get("Authorization"))
    await logout_user(ledger, token_service, current_user, raw_token, request.state.auth_method, request)
    return success_response("Logged out successfully")


@router.get("/me")
async def me(current_user: User = Depends(get_current_user)):
    """
    Get the authenticated user's profile.
    """
    return success_response(
        "User profile retrieved successfully",
        {"user": UserResponse.model_validate(current_user)},
    )


@router.post("/forgot-password")
async def forgot_password(
    data: ForgotPasswordRequest,
    request: Request,
    store: CredentialStore = Depends(get_credential_store),
    engine: OtpChallengeEngine = Depends(get_otp_engine),
):
    """
    Send a password reset code to the account's email.
    """
    payload, warning = await request_password_reset(
        store, engine, request.app.state.notifier, request.app.state.settings, data.email, request
    )
    return success_response(
        "Verification code sent to your email address", OtpIssuedPayload(**payload), warning=warning
    )


@router.post("/resend-otp")
async def resend_otp(
    data: ForgotPasswordRequest,
    request: Request,
    store: CredentialStore = Depends(get_credential_store),
    engine: OtpChallengeEngine = Depends(get_otp_engine),
):
    """
    Replace the pending reset code with a new one and send it.
    """
    payload, warning = await request_password_reset(
        store, engine, request.app.state.notifier, request.app.state.settings, data.email, request,
        resend=True,
    )
    return success_response(
        "New verification code sent to your email address", OtpIssuedPayload(**payload), warning=warning
    )


@router.post("/verify-otp")
async def verify_otp(
    data: VerifyOtpRequest,
    request: Request,
    store: CredentialStore = Depends(get_credential_store),
    engine: OtpChallengeEngine = Depends(get_otp_engine),
):
    """
    Verify a reset code and receive a reset token.
    """
    result = await verify_reset_code(store, engine, data.email, data.otp, request)
    return success_response("Email verified successfully", OtpVerifiedPayload(**result))


@router.post("/reset-password")
async def reset_password_route(
    data: ResetPasswordRequest,
    request: Request,
    store: CredentialStore = Depends(get_credential_store),
    ledger: RevocationLedger = Depends(get_revocation_ledger),
    token_service: SessionTokenService = Depends(get_token_service),
):
    """
    Set a new password with the reset token from verify-otp.
    """
    await reset_password(store, token_service, ledger, data, request)
    return success_response("Password reset successfully. You can now login with your new password.")
