from __future__ import annotations

"""Response Pydantic models for email-change endpoints.

Token hashes and the internal uniqueness key never leave the service; the
`from_entity` constructors copy only the public attributes.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from timeledger.domain.entities.email_change_audit_log import EmailChangeAuditLog
from timeledger.domain.entities.email_change_request import EmailChangeRequest


class EmailChangeRequestOut(BaseModel):
    id: str
    user_id: str
    current_email: str
    new_email: str
    status: str
    reason: str
    custom_reason: Optional[str] = None
    current_email_verified: bool
    new_email_verified: bool
    current_email_verified_at: Optional[datetime] = None
    new_email_verified_at: Optional[datetime] = None
    verification_tokens_expires_at: datetime
    requested_at: datetime
    verified_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    approval_notes: Optional[str] = None
    rejected_by: Optional[str] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    cancelled_by: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    estimated_completion_time: Optional[datetime] = None
    user_name: Optional[str] = None
    user_current_email: Optional[str] = None

    @classmethod
    def from_entity(
        cls,
        request: EmailChangeRequest,
        user_name: Optional[str] = None,
        user_current_email: Optional[str] = None,
    ) -> "EmailChangeRequestOut":
        data = request.model_dump(
            exclude={"current_email_token_hash", "new_email_token_hash", "active_key", "ip_address", "user_agent"}
        )
        data.update(status=request.status.value, reason=request.reason.value)
        return cls(**data, user_name=user_name, user_current_email=user_current_email)


class AuditLogEntryOut(BaseModel):
    id: str
    action: str
    performed_by: Optional[str] = None
    performed_at: datetime
    details: Dict[str, Any] = {}
    ip_address: Optional[str] = None

    @classmethod
    def from_entity(cls, entry: EmailChangeAuditLog) -> "AuditLogEntryOut":
        return cls(
            id=entry.id,
            action=entry.action.value,
            performed_by=entry.performed_by,
            performed_at=entry.performed_at,
            details=entry.details,
            ip_address=entry.ip_address,
        )


class SubmitEmailChangeResponse(BaseModel):
    request: EmailChangeRequestOut
    requires_approval: bool
    estimated_completion_time: datetime
    verification_required: Dict[str, bool]
    next_steps: List[str]


class VerifyEmailChangeResponse(BaseModel):
    request_id: str
    email_type: str
    status: str
    next_step: str
    message: str
    current_email_verified: bool
    new_email_verified: bool


class ResendVerificationResponse(BaseModel):
    request_id: str
    email_type: str
    email_address: str
    resent_at: datetime
    expires_at: datetime


class ApproveEmailChangeResponse(BaseModel):
    request: EmailChangeRequestOut
    approved_by_id: str
    approved_by_name: str
    estimated_completion_time: datetime


class RejectEmailChangeResponse(BaseModel):
    request: EmailChangeRequestOut
    rejected_by_id: str
    rejected_by_name: str


class CancelEmailChangeResponse(BaseModel):
    request: EmailChangeRequestOut
    cancelled_by: str
    cancelled_by_name: str


class ProcessEmailChangeResponse(BaseModel):
    request: EmailChangeRequestOut
    processed_by: str
    previous_email: str
    new_email: str


class EmailChangeRequestListResponse(BaseModel):
    items: List[EmailChangeRequestOut]
    next_cursor: Optional[str] = None
    has_more: bool


class EmailChangeRequestDetailResponse(BaseModel):
    request: EmailChangeRequestOut
    audit_log: List[AuditLogEntryOut]
