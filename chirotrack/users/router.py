"""
User management routes. Every route requires authentication.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ..auth.dependencies import get_current_user
from ..auth.models import User
from ..auth.schemas import UserResponse
from ..core.pagination import PageParams, pagination_block
from ..core.responses import success_response
from ..database import get_db
from .schemas import PasswordUpdate, UserUpdate
from .service import change_password, get_user, list_users, update_user, user_list_payload

router = APIRouter(
    prefix="/api/users",
    tags=["Users"],
    dependencies=[Depends(get_current_user)],
)


@router.get("/")
async def get_users(
    page_params: PageParams = Depends(),
    search: Optional[str] = Query(None, description="Match first name, last name or email"),
    db: Session = Depends(get_db),
):
    users, total = await list_users(db, page_params, search)
    pagination = pagination_block(page_params, total, "totalUsers")
    return success_response("Users retrieved successfully", user_list_payload(users, pagination))


@router.get("/{user_id}")
async def get_user_by_id(user_id: int, db: Session = Depends(get_db)):
    user = await get_user(db, user_id)
    return success_response("User retrieved successfully", {"user": UserResponse.model_validate(user)})


@router.put("/{user_id}")
async def update_user_names(
    user_id: int,
    data: UserUpdate,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Update the caller's own first and last name.
    """
    user = await update_user(db, current_user, user_id, data, request)
    return success_response("User updated successfully", {"user": UserResponse.model_validate(user)})


@router.patch("/{user_id}/password")
async def update_password(
    user_id: int,
    data: PasswordUpdate,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Change the caller's own password.
    """
    await change_password(db, current_user, user_id, data, request)
    return success_response("Password updated successfully")
