from enum import Enum

from sqlalchemy import Column, String, JSON

from models.base_model import BaseModel, Base


class AuditAction(str, Enum):
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILED = "LOGIN_FAILED"
    USER_CREATED = "USER_CREATED"
    USER_DELETED = "USER_DELETED"
    TOKEN_REFRESH = "TOKEN_REFRESH"
    TOKEN_REUSE_DETECTED = "TOKEN_REUSE_DETECTED"
    LOGOUT = "LOGOUT"
    PASSWORD_CHANGED = "PASSWORD_CHANGED"


class AuditLog(BaseModel, Base):
    __tablename__ = "audit_logs"

    # no FK: failed logins are recorded against "unknown"
    user_id = Column(String(36), nullable=False, index=True)
    action = Column(String(64), nullable=False, index=True)
    resource_type = Column(String(64), nullable=False)
    resource_id = Column(String(36), nullable=True)
    changes = Column(JSON, nullable=True)
    ip_address = Column(String(64), nullable=False, default="unknown")
