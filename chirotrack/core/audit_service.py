from typing import Any, Dict, Optional, Union
import logging

from fastapi import Request
from sqlalchemy.orm import Session

from .audit_models import AuditAction, AuditLog

logger = logging.getLogger(__name__)

# Never persisted, even if a caller passes them by mistake
SENSITIVE_KEYS = {"password", "new_password", "otp", "code", "token", "reset_token", "id_token"}


def client_ip(request: Optional[Request]) -> Optional[str]:
    if request is None:
        return None
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


async def create_audit_log(
    db: Session,
    action: Union[AuditAction, str],
    user_id: Optional[int] = None,
    request: Optional[Request] = None,
    details: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Creates an audit log entry.

    Args:
        db: The database session.
        action: What happened (an ``AuditAction``).
        user_id: The ID of the user the action concerns (if known).
        request: The request, used for the client IP address.
        details: Additional context for the action.

    Returns:
        The created AuditLog object.
    """
    if details:
        details = {key: value for key, value in details.items() if key not in SENSITIVE_KEYS}

    audit_entry = AuditLog(
        user_id=user_id,
        action=action.value if isinstance(action, AuditAction) else action,
        ip_address=client_ip(request),
        details=details or None
    )
    db.add(audit_entry)
    db.commit()
    db.refresh(audit_entry)
    logger.debug(f"Audit: {audit_entry.action} user={user_id}")
    return audit_entry
