from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

SYSTEM_ACTOR = "system"


class AuditAction(str, Enum):
    CREATED = "created"
    CURRENT_EMAIL_VERIFIED = "current_email_verified"
    NEW_EMAIL_VERIFIED = "new_email_verified"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    VERIFICATION_RESENT = "verification_resent"


class EmailChangeAuditLog(BaseModel):
    """Append-only audit entry of an email-change request.

    `performed_by` is ``"system"`` for automatic transitions and the acting
    user otherwise; verifications are attributed to the request owner.
    """

    id: str
    request_id: str
    action: AuditAction
    performed_by: Optional[str] = None
    performed_at: datetime
    details: Dict[str, Any] = Field(default_factory=dict)
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
