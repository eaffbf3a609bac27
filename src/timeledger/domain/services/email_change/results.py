"""Structured results returned by the email-change services."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from timeledger.domain.entities.email_change_audit_log import EmailChangeAuditLog
from timeledger.domain.entities.email_change_request import EmailChangeRequest, EmailType


class VerificationNextStep(str, Enum):
    VERIFY_OTHER_EMAIL = "verify_other_email"
    PENDING_APPROVAL = "pending_approval"
    AUTO_APPROVED = "auto_approved"


@dataclass(frozen=True)
class SubmitResult:
    request: EmailChangeRequest
    requires_approval: bool
    estimated_completion_time: datetime
    next_steps: List[str]
    verification_required: Dict[str, bool] = field(
        default_factory=lambda: {"current_email": True, "new_email": True}
    )


@dataclass(frozen=True)
class VerifyResult:
    request: EmailChangeRequest
    email_type: EmailType
    next_step: VerificationNextStep
    message: str


@dataclass(frozen=True)
class ResendResult:
    request_id: str
    email_type: EmailType
    email_address: str
    resent_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class ApproveResult:
    request: EmailChangeRequest
    approved_by_id: str
    approved_by_name: str
    estimated_completion_time: datetime


@dataclass(frozen=True)
class RejectResult:
    request: EmailChangeRequest
    rejected_by_id: str
    rejected_by_name: str


@dataclass(frozen=True)
class CancelResult:
    request: EmailChangeRequest
    cancelled_by: str
    cancelled_by_name: str


@dataclass(frozen=True)
class ProcessResult:
    request: EmailChangeRequest
    processed_by: str
    previous_email: str
    new_email: str


@dataclass(frozen=True)
class ListedRequest:
    request: EmailChangeRequest
    user_name: Optional[str] = None
    user_current_email: Optional[str] = None


@dataclass(frozen=True)
class ListResult:
    items: List[ListedRequest]
    next_cursor: Optional[str]

    @property
    def has_more(self) -> bool:
        return self.next_cursor is not None


@dataclass(frozen=True)
class RequestDetails:
    request: EmailChangeRequest
    audit_log: List[EmailChangeAuditLog]
