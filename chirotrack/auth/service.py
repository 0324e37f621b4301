"""
Authentication service functions.

Each function receives its collaborators explicitly; the router wires them
from the request's dependencies.
"""
from typing import Any, Dict, Optional, Tuple
import logging

from fastapi import Request
from starlette.concurrency import run_in_threadpool

from ..config import Settings
from ..core.audit_models import AuditAction
from ..core.audit_service import create_audit_log
from ..core.notifier import Notifier
from ..core.security import hash_password, utc_now, verify_password
from ..exceptions import StateException, ValidationException
from .exceptions import (
    DeliveryFailedException,
    EmailAlreadyExistsException,
    FederatedSignInException,
    FederatedVerificationError,
    InvalidCredentialsException,
    InvalidTokenException,
    PasswordResetException,
    UserNotFoundException,
)
from .federated import IdentityVerifier
from .models import AuthProvider, User
from .otp import OtpChallengeEngine
from .resolver import AUTH_METHOD_LOCAL, provision_federated_user
from .revocation import RevocationLedger
from .schemas import ResetPasswordRequest, UserRegistration, UserResponse
from .store import CredentialStore
from .tokens import PASSWORD_RESET_PURPOSE, SessionTokenService

# Set up logging
logger = logging.getLogger(__name__)

DELIVERY_WARNING = "The verification code could not be sent by email. Please try again shortly."


def _auth_payload(user: User, token: str) -> Dict[str, Any]:
    return {"user": UserResponse.model_validate(user), "token": token}


def _touch_last_login(store: CredentialStore, user: User) -> User:
    user.last_login = utc_now()
    return store.save(user)


async def register_user(
    store: CredentialStore,
    token_service: SessionTokenService,
    data: UserRegistration,
    request: Optional[Request] = None
) -> Dict[str, Any]:
    """
    Register a practitioner with email and password.

    Args:
        store: Credential store
        token_service: Issues the session token
        data: Validated registration body
        request: Request for audit logging

    Returns:
        Dict with the new user and a session token

    Raises:
        EmailAlreadyExistsException: If the normalized email is taken
    """
    if store.find_by_email(data.email):
        logger.info("Registration rejected: email already registered")
        raise EmailAlreadyExistsException()

    user = store.create(
        first_name=data.first_name,
        last_name=data.last_name,
        email=data.email,
        password_hash=hash_password(data.password),
        provider=AuthProvider.LOCAL,
        last_login=utc_now(),
    )
    await create_audit_log(store.db, AuditAction.USER_REGISTERED, user_id=user.id, request=request)

    return _auth_payload(user, token_service.issue(user.id))


async def login_user(
    store: CredentialStore,
    token_service: SessionTokenService,
    email: str,
    password: str,
    request: Optional[Request] = None
) -> Dict[str, Any]:
    """
    Authenticate with email and password.

    Unknown email, wrong password and password-less accounts all fail the
    same way.

    Raises:
        InvalidCredentialsException: If the credentials do not match
    """
    user = store.find_by_email(email)

    if not user or not verify_password(password, user.password_hash):
        logger.warning("Login failed: invalid credentials")
        await create_audit_log(
            store.db,
            AuditAction.LOGIN_FAILED,
            user_id=user.id if user else None,
            request=request,
            details={"user_exists": bool(user)},
        )
        raise InvalidCredentialsException()

    user = _touch_last_login(store, user)
    await create_audit_log(store.db, AuditAction.LOGIN_SUCCESS, user_id=user.id, request=request)
    logger.info(f"Login successful: User {user.id}")

    return _auth_payload(user, token_service.issue(user.id))


async def google_sign_in(
    store: CredentialStore,
    identity_verifier: IdentityVerifier,
    token_service: SessionTokenService,
    id_token: Optional[str],
    request: Optional[Request] = None
) -> Dict[str, Any]:
    """
    Exchange a federated identity token for a local session.

    The account is found by subject id, linked by verified email, or
    provisioned.

    Raises:
        ValidationException: If no idToken was supplied
        FederatedSignInException: If the token or the account link was rejected
    """
    if not id_token:
        raise ValidationException("ID token is required")

    try:
        claims = await run_in_threadpool(identity_verifier.verify, id_token)
        user = provision_federated_user(store, claims)
    except FederatedVerificationError as e:
        logger.warning(f"Federated sign-in failed: {e.message}")
        await create_audit_log(store.db, AuditAction.FEDERATED_SIGN_IN_FAILED, request=request)
        raise FederatedSignInException() from e

    user = _touch_last_login(store, user)
    await create_audit_log(
        store.db,
        AuditAction.FEDERATED_SIGN_IN,
        user_id=user.id,
        request=request,
        details={"provider": user.provider.value},
    )
    logger.info(f"Federated sign-in successful: User {user.id}")

    return _auth_payload(user, token_service.issue(user.id))


async def logout_user(
    ledger: RevocationLedger,
    token_service: SessionTokenService,
    user: User,
    raw_token: str,
    auth_method: str,
    request: Optional[Request] = None
) -> None:
    """
    Revoke the caller's session token.

    Federated tokens are owned by the provider and are not recorded.
    """
    if auth_method == AUTH_METHOD_LOCAL:
        claims = token_service.verify(raw_token)
        ledger.revoke(raw_token, user.id, claims.expires_at)

    await create_audit_log(
        ledger.db,
        AuditAction.LOGOUT,
        user_id=user.id,
        request=request,
        details={"method": auth_method},
    )
    logger.info(f"User {user.id} logged out ({auth_method})")


async def request_password_reset(
    store: CredentialStore,
    engine: OtpChallengeEngine,
    notifier: Notifier,
    settings: Settings,
    email: str,
    request: Optional[Request] = None,
    resend: bool = False
) -> Tuple[Dict[str, Any], Optional[str]]:
    """
    Issue a reset code and send it to the account's email.

    A new code always replaces the previous one, so resending is the same
    operation.

    Args:
        store: Credential store
        engine: OTP engine
        notifier: Delivers the code
        settings: Decides whether a failed delivery fails the request
        email: Account email
        request: Request for audit logging
        resend: Whether this is a resend (logging only)

    Returns:
        Tuple of the payload and an optional delivery warning

    Raises:
        UserNotFoundException: If no account has this email
        NoPasswordCredentialException: If the account has no password
        DeliveryFailedException: If delivery failed and failures are not tolerated
    """
    user = store.find_by_email(email)
    if not user:
        raise UserNotFoundException()

    issued = engine.issue(user)
    await create_audit_log(
        store.db, AuditAction.OTP_ISSUED, user_id=user.id, request=request, details={"resend": resend}
    )

    result = await run_in_threadpool(notifier.deliver, user.email, issued.code)
    warning = None
    if not result.delivered:
        logger.error(f"Reset code delivery failed for user {user.id}: {result.error}")
        await create_audit_log(store.db, AuditAction.OTP_DELIVERY_FAILED, user_id=user.id, request=request)
        if not settings.tolerate_delivery_failure:
            raise DeliveryFailedException()
        warning = DELIVERY_WARNING

    payload = {"email": user.email, "expires_in": settings.otp_expire_seconds}
    return payload, warning


async def verify_reset_code(
    store: CredentialStore,
    engine: OtpChallengeEngine,
    email: str,
    otp: str,
    request: Optional[Request] = None
) -> Dict[str, Any]:
    """
    Check a reset code and hand out the reset token.

    Raises:
        UserNotFoundException: If no account has this email
        StateException: On a missing, expired, locked or wrong code
    """
    user = store.find_by_email(email)
    if not user:
        raise UserNotFoundException()

    try:
        verification = engine.verify(user, otp)
    except StateException as e:
        await create_audit_log(
            store.db,
            AuditAction.OTP_VERIFICATION_FAILED,
            user_id=user.id,
            request=request,
            details={"reason": type(e).__name__},
        )
        raise

    await create_audit_log(store.db, AuditAction.OTP_VERIFIED, user_id=user.id, request=request)
    return {"reset_token": verification.reset_token, "email": user.email}


async def reset_password(
    store: CredentialStore,
    token_service: SessionTokenService,
    ledger: RevocationLedger,
    data: ResetPasswordRequest,
    request: Optional[Request] = None
) -> None:
    """
    Set a new password using the token from a verified reset code.

    Only tokens minted by verify-otp are accepted; ordinary session tokens
    are refused. The reset token is revoked afterwards so it cannot be
    replayed, and any pending code is cleared.

    Raises:
        ValidationException: If the passwords do not match
        UserNotFoundException: If no account has this email
        PasswordResetException: If the reset token is invalid, used, not a
            reset token, or belongs to another account
    """
    if data.new_password != data.confirm_password:
        raise ValidationException("Password confirmation does not match")

    user = store.find_by_email(data.email)
    if not user:
        raise UserNotFoundException()

    try:
        claims = token_service.verify(data.reset_token)
    except InvalidTokenException as e:
        raise PasswordResetException("Invalid or expired reset token") from e
    if (
        claims.purpose != PASSWORD_RESET_PURPOSE
        or claims.user_id != user.id
        or ledger.is_revoked(data.reset_token)
    ):
        logger.warning(f"Reset token rejected for user {user.id}")
        raise PasswordResetException("Invalid or expired reset token")

    user.password_hash = hash_password(data.new_password)
    store.save(user)
    store.clear_otp_challenge(user)
    ledger.revoke(data.reset_token, user.id, claims.expires_at)

    await create_audit_log(store.db, AuditAction.PASSWORD_RESET, user_id=user.id, request=request)
    logger.info(f"Password reset for user {user.id}")
