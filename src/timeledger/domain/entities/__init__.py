from .email_change_audit_log import SYSTEM_ACTOR, AuditAction, EmailChangeAuditLog
from .email_change_request import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    ChangeReason,
    EmailChangeRequest,
    EmailType,
    RequestStatus,
)
from .principal import Principal
from .user import Role, User

__all__ = [
    "ACTIVE_STATUSES",
    "TERMINAL_STATUSES",
    "SYSTEM_ACTOR",
    "AuditAction",
    "ChangeReason",
    "EmailChangeAuditLog",
    "EmailChangeRequest",
    "EmailType",
    "Principal",
    "RequestStatus",
    "Role",
    "User",
]
