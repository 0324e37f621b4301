"""
Authentication-specific exceptions.
"""
from ..exceptions import (
    AuthenticationException,
    InternalException,
    NotFoundException,
    StateException,
    ValidationException,
)


class InvalidCredentialsException(AuthenticationException):
    """Wrong password, unknown email, or no password on the account."""
    default_message = "Invalid email or password"


class EmailAlreadyExistsException(ValidationException):
    """Exception raised when email already exists."""
    default_message = "User already exists with this email address"


class MissingCredentialException(AuthenticationException):
    """No Authorization header, or not a Bearer credential."""
    default_message = "Access denied. No token provided."


class InvalidTokenException(AuthenticationException):
    """Session token is malformed, badly signed or expired."""
    default_message = "Invalid token or token expired."


class TokenRevokedException(AuthenticationException):
    """Session token was revoked by logout."""
    default_message = "Token has been invalidated. Please login again."


class TokenUserNotFoundException(AuthenticationException):
    """Session token is valid but its user no longer exists."""
    default_message = "User not found."


class FederatedVerificationError(AuthenticationException):
    """Identity provider rejected the token."""
    default_message = "Federated identity token could not be verified"


class UnauthenticatedException(AuthenticationException):
    """
    Every verifier rejected the credential.

    The message is the same whichever verifier failed.
    """
    default_message = "Invalid token or token expired."


class FederatedSignInException(InternalException):
    """Federated sign-in failed; reported as a server error."""
    default_message = "Internal server error during Google sign-in"


class UserNotFoundException(NotFoundException):
    default_message = "No user found with this email address"


class NoPasswordCredentialException(ValidationException):
    """Federated-only accounts have no password to reset."""
    default_message = "This account uses Google sign-in. Please use Google to reset your password."


class NoChallengeException(StateException):
    default_message = "No verification code found. Please request a new one."


class OtpExpiredException(StateException):
    default_message = "Verification code has expired. Please request a new one."


class TooManyAttemptsException(StateException):
    default_message = "Too many failed attempts. Please request a new verification code."


class OtpMismatchException(StateException):
    default_message = "Invalid verification code. Please try again."


class PasswordResetException(ValidationException):
    """Exception raised during password reset."""
    default_message = "Password reset failed"


class DeliveryFailedException(InternalException):
    default_message = "Failed to send verification code. Please try again."
