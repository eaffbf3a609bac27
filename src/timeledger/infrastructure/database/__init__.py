from .tables import (
    AUDIT_LOGS_COLLECTION,
    REQUESTS_COLLECTION,
    EmailChangeAuditLogRecord,
    EmailChangeRequestRecord,
)

__all__ = [
    "AUDIT_LOGS_COLLECTION",
    "REQUESTS_COLLECTION",
    "EmailChangeAuditLogRecord",
    "EmailChangeRequestRecord",
]
