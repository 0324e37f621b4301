"""
User management schemas.

Required-field checks live in the service so each gets its own message.
"""
from typing import Optional

from ..core.responses import CamelModel


class UserUpdate(CamelModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class PasswordUpdate(CamelModel):
    """
    Password Change Schema

    Fields:
    - oldPassword: Current password
    - newPassword: New password, at least 6 characters
    - confirmNewPassword: Must equal newPassword
    """
    old_password: Optional[str] = None
    new_password: Optional[str] = None
    confirm_new_password: Optional[str] = None
