"""
Audit trail of security-relevant actions.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum

from ..database import Base


class AuditAction(str, enum.Enum):
    USER_REGISTERED = "USER_REGISTERED"
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILED = "LOGIN_FAILED"
    FEDERATED_SIGN_IN = "FEDERATED_SIGN_IN"
    FEDERATED_SIGN_IN_FAILED = "FEDERATED_SIGN_IN_FAILED"
    LOGOUT = "LOGOUT"
    OTP_ISSUED = "OTP_ISSUED"
    OTP_DELIVERY_FAILED = "OTP_DELIVERY_FAILED"
    OTP_VERIFIED = "OTP_VERIFIED"
    OTP_VERIFICATION_FAILED = "OTP_VERIFICATION_FAILED"
    PASSWORD_RESET = "PASSWORD_RESET"
    PASSWORD_CHANGED = "PASSWORD_CHANGED"
    PROFILE_UPDATED = "PROFILE_UPDATED"


class AuditLog(Base):
    """
    One audited action.

    Fields:
    - user_id: Acting account, kept nullable so entries outlive the account
    - action: AuditAction value
    - details: Extra context; never codes, tokens or passwords
    - ip_address: Client address when known
    - timestamp: When the action happened
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    action = Column(String, nullable=False, index=True)
    details = Column(JSON, nullable=True)
    ip_address = Column(String, nullable=True)
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    user = relationship("User")

    def __repr__(self):
        return f"<AuditLog(id={self.id}, user_id={self.user_id}, action='{self.action}')>"
