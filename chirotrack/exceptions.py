"""
Global exception handlers and custom exception classes.

Every failure leaves the API in the same envelope as a success:
``{"success": false, "message": ..., "errors": [...]}``.
"""
from typing import Any, List, Optional
import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

# Set up logging
logger = logging.getLogger(__name__)


class AppException(Exception):
    """
    Base exception class for application-specific exceptions.
    """
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[Any]] = None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class ValidationException(AppException):
    """Malformed or conflicting input."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Validation failed"


class AuthenticationException(AppException):
    """Bad, missing, expired or revoked credential."""
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized access"


class PermissionDeniedException(AppException):
    """Authenticated caller acting on someone else's resource."""
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden access"


class NotFoundException(AppException):
    """Requested resource does not exist."""
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class StateException(AppException):
    """Request is well formed but the resource is in the wrong state."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid state for this operation"


class InternalException(AppException):
    """Unexpected storage or provider fault. The message is shown to clients."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"


def error_body(message: str, errors: Optional[List[Any]] = None) -> dict:
    body = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return body


async def app_exception_handler(request: Request, exc: AppException):
    """
    Handler for application-specific exceptions.

    Args:
        request: The request that caused the exception
        exc: The exception instance

    Returns:
        JSONResponse: Standardized error response
    """
    if exc.status_code >= 500:
        logger.error(f"Application error on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    headers = None
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.message, exc.errors),
        headers=headers,
    )


def _format_validation_errors(errors) -> List[dict]:
    formatted = []
    for error in errors:
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        message = error.get("msg", "Invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        formatted.append({"field": ".".join(location), "message": message})
    return formatted


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handler for request validation exceptions.

    Args:
        request: The request that caused the exception
        exc: The validation exception instance

    Returns:
        JSONResponse: Standardized error response with validation details
    """
    errors = _format_validation_errors(exc.errors())
    logger.info(f"Validation error on {request.method} {request.url.path}: {errors}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body("Validation failed", errors)
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Wrap framework HTTP errors (404 routes, 405 methods) in the envelope."""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    """
    Last-resort handler: log everything, reveal nothing.
    """
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("Internal server error")
    )


# Register exception handlers with FastAPI app
def register_exception_handlers(app):
    """
    Register all exception handlers with the FastAPI application.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
