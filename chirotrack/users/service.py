"""
User management service functions.
"""
from typing import Any, Dict, List, Optional, Tuple
import logging

from fastapi import Request
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..auth.exceptions import InvalidCredentialsException
from ..auth.models import User
from ..auth.schemas import UserResponse
from ..core.audit_models import AuditAction
from ..core.audit_service import create_audit_log
from ..core.pagination import PageParams, paginate
from ..core.security import hash_password, verify_password
from ..exceptions import NotFoundException, PermissionDeniedException, ValidationException
from .schemas import PasswordUpdate, UserUpdate

logger = logging.getLogger(__name__)


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


async def list_users(db: Session, page_params: PageParams, search: Optional[str] = None) -> Tuple[List[User], int]:
    """
    List accounts newest first, optionally filtered by name or email.
    """
    query = db.query(User)
    if search and search.strip():
        pattern = f"%{_escape_like(search.strip())}%"
        query = query.filter(
            or_(
                User.first_name.ilike(pattern, escape="\\"),
                User.last_name.ilike(pattern, escape="\\"),
                User.email.ilike(pattern, escape="\\"),
            )
        )
    query = query.order_by(User.created_at.desc(), User.id.desc())
    return paginate(query, page_params)


async def get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundException("User not found")
    return user


def _require_owner(current_user: User, user_id: int) -> None:
    if current_user.id != user_id:
        logger.warning(f"User {current_user.id} tried to modify account {user_id}")
        raise PermissionDeniedException("You can only modify your own account")


async def update_user(
    db: Session,
    current_user: User,
    user_id: int,
    data: UserUpdate,
    request: Optional[Request] = None
) -> User:
    """
    Update an account's first and last name.

    Raises:
        PermissionDeniedException: If the caller is not the account owner
        ValidationException: If a name is missing or too long
        NotFoundException: If the account does not exist
    """
    user = await get_user(db, user_id)
    _require_owner(current_user, user_id)

    first_name = (data.first_name or "").strip()
    last_name = (data.last_name or "").strip()
    if not first_name or not last_name:
        raise ValidationException("First name and last name are required")
    if len(first_name) > 50:
        raise ValidationException("First name cannot exceed 50 characters")
    if len(last_name) > 50:
        raise ValidationException("Last name cannot exceed 50 characters")

    user.first_name = first_name
    user.last_name = last_name
    db.commit()
    db.refresh(user)

    await create_audit_log(db, AuditAction.PROFILE_UPDATED, user_id=user.id, request=request)
    return user


async def change_password(
    db: Session,
    current_user: User,
    user_id: int,
    data: PasswordUpdate,
    request: Optional[Request] = None
) -> None:
    """
    Change an account's password, given the current one.

    Raises:
        PermissionDeniedException: If the caller is not the account owner
        ValidationException: On missing, mismatched, short or unchanged passwords,
            or when the account has no password
        InvalidCredentialsException: If the old password is wrong
        NotFoundException: If the account does not exist
    """
    if not data.old_password or not data.new_password or not data.confirm_new_password:
        raise ValidationException("Old password, new password, and confirm new password are required")
    if data.new_password != data.confirm_new_password:
        raise ValidationException("New password and confirm password do not match")
    if len(data.new_password) < 6:
        raise ValidationException("New password must be at least 6 characters long")

    user = await get_user(db, user_id)
    _require_owner(current_user, user_id)

    if not user.has_password:
        raise ValidationException(
            "This account does not have a password set. Please use your Google account to sign in."
        )
    if not verify_password(data.old_password, user.password_hash):
        raise InvalidCredentialsException("Old password is incorrect")
    if data.old_password == data.new_password:
        raise ValidationException("New password must be different from the old password")

    user.password_hash = hash_password(data.new_password)
    db.commit()

    await create_audit_log(db, AuditAction.PASSWORD_CHANGED, user_id=user.id, request=request)
    logger.info(f"Password changed for user {user.id}")


def user_list_payload(users: List[User], pagination: Dict[str, Any]) -> Dict[str, Any]:
    return {"users": [UserResponse.model_validate(user) for user in users], "pagination": pagination}
