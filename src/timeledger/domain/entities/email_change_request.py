"""Email-change request aggregate.

An `EmailChangeRequest` tracks one attempt of a user to replace the email
address of their account. It moves through a small state machine:

    pending_verification -> pending_approval -> approved -> completed
    pending_verification -> approved            (auto-approval)
    pending_verification | pending_approval -> rejected | cancelled

`completed`, `rejected` and `cancelled` are terminal. Only the hash of each
verification token is part of the aggregate; the plain token exists only on
the instance returned right after issuance.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Optional

from pydantic import BaseModel, Field, PrivateAttr


class RequestStatus(str, Enum):
    PENDING_VERIFICATION = "pending_verification"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class ChangeReason(str, Enum):
    NAME_CHANGE = "name_change"
    COMPANY_CHANGE = "company_change"
    PERSONAL_PREFERENCE = "personal_preference"
    SECURITY_CONCERN = "security_concern"
    OTHER = "other"

    @property
    def label(self) -> str:
        return _REASON_LABELS[self]


_REASON_LABELS: Dict[ChangeReason, str] = {
    ChangeReason.NAME_CHANGE: "Name Change",
    ChangeReason.COMPANY_CHANGE: "Company Change",
    ChangeReason.PERSONAL_PREFERENCE: "Personal Preference",
    ChangeReason.SECURITY_CONCERN: "Security Concern",
    ChangeReason.OTHER: "Other",
}


class EmailType(str, Enum):
    CURRENT = "current"
    NEW = "new"

    @property
    def other(self) -> "EmailType":
        return EmailType.NEW if self is EmailType.CURRENT else EmailType.CURRENT


ACTIVE_STATUSES: FrozenSet[RequestStatus] = frozenset(
    {RequestStatus.PENDING_VERIFICATION, RequestStatus.PENDING_APPROVAL, RequestStatus.APPROVED}
)
TERMINAL_STATUSES: FrozenSet[RequestStatus] = frozenset(
    {RequestStatus.COMPLETED, RequestStatus.REJECTED, RequestStatus.CANCELLED}
)
CANCELLABLE_STATUSES: FrozenSet[RequestStatus] = frozenset(
    {RequestStatus.PENDING_VERIFICATION, RequestStatus.PENDING_APPROVAL}
)
REJECTABLE_STATUSES = CANCELLABLE_STATUSES

AUTO_APPROVAL_REASONS: FrozenSet[ChangeReason] = frozenset(
    {ChangeReason.PERSONAL_PREFERENCE, ChangeReason.NAME_CHANGE}
)


def extract_domain(email: str) -> str:
    """Return the lower-cased part after the last ``@`` (empty if none)."""
    return email.rsplit("@", 1)[1].lower() if "@" in email else ""


def is_domain_change(current_email: str, new_email: str) -> bool:
    return extract_domain(current_email) != extract_domain(new_email)


def requires_admin_approval(
    reason: ChangeReason,
    current_email: str,
    new_email: str,
    auto_approval_reasons: Optional[Iterable[ChangeReason]] = None,
) -> bool:
    """Decide whether a request needs a human decision once verified.

    Approval is skipped only when the reason is one of the auto-approval
    reasons and the email domain stays the same.
    """
    reasons = AUTO_APPROVAL_REASONS if auto_approval_reasons is None else frozenset(auto_approval_reasons)
    if reason not in reasons:
        return True
    return is_domain_change(current_email, new_email)


class EmailChangeRequest(BaseModel):
    """Aggregate root of the email-change workflow."""

    id: str
    user_id: str
    current_email: str
    new_email: str
    status: RequestStatus = RequestStatus.PENDING_VERIFICATION
    reason: ChangeReason
    custom_reason: Optional[str] = None

    current_email_verified: bool = False
    new_email_verified: bool = False
    current_email_verified_at: Optional[datetime] = None
    new_email_verified_at: Optional[datetime] = None
    current_email_token_hash: str
    new_email_token_hash: str
    verification_tokens_expires_at: datetime

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

    requested_at: datetime
    verified_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    # user_id while the request is active, None once terminal; unique in storage
    active_key: Optional[str] = Field(default=None)

    _issued_tokens: Dict[EmailType, str] = PrivateAttr(default_factory=dict)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_fully_verified(self) -> bool:
        return self.current_email_verified and self.new_email_verified

    def is_verified(self, email_type: EmailType) -> bool:
        if email_type is EmailType.CURRENT:
            return self.current_email_verified
        return self.new_email_verified

    def email_for(self, email_type: EmailType) -> str:
        return self.current_email if email_type is EmailType.CURRENT else self.new_email

    def token_hash_for(self, email_type: EmailType) -> str:
        if email_type is EmailType.CURRENT:
            return self.current_email_token_hash
        return self.new_email_token_hash

    def requires_admin_approval(self, auto_approval_reasons: Optional[Iterable[ChangeReason]] = None) -> bool:
        return requires_admin_approval(self.reason, self.current_email, self.new_email, auto_approval_reasons)

    @property
    def is_domain_change(self) -> bool:
        return is_domain_change(self.current_email, self.new_email)

    def attach_issued_token(self, email_type: EmailType, token: str) -> None:
        self._issued_tokens[email_type] = token

    def issued_token(self, email_type: EmailType) -> Optional[str]:
        """Plain token issued by the call that produced this instance, if any."""
        return self._issued_tokens.get(email_type)
