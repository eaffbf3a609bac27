"""Validation rules of the email-change workflow.

Shape validation (`validate_*_request`) checks a raw payload mapping and
reports every problem it finds. Business rules (`validate_business_rules`)
run afterwards against repository state and report symbolic error codes.
All functions are pure; time-dependent checks accept ``now``.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, List, Mapping, Optional

from timeledger.core.exceptions import EmailChangeErrorCode
from timeledger.domain.entities.email_change_request import ChangeReason, EmailType, RequestStatus
from timeledger.domain.value_objects.verification_token import VerificationToken, is_expired

EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")

MAX_EMAIL_LENGTH = 320
MAX_CUSTOM_REASON_LENGTH = 500
MAX_NOTES_LENGTH = 1000
MAX_LIST_LIMIT = 100
DEFAULT_LIST_LIMIT = 20
DEFAULT_COOLDOWN_HOURS = 24

SORT_FIELDS = ("requested_at", "status", "current_email", "new_email")
SORT_ORDERS = ("asc", "desc")

_REASONS = tuple(reason.value for reason in ChangeReason)
_EMAIL_TYPES = tuple(email_type.value for email_type in EmailType)
_STATUSES = tuple(status.value for status in RequestStatus)


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    errors: List[str] = field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: List[str]) -> "ValidationResult":
        return cls(is_valid=not errors, errors=list(errors))

    @property
    def first_error(self) -> Optional[str]:
        return self.errors[0] if self.errors else None


def is_valid_email(email: Any) -> bool:
    return isinstance(email, str) and len(email) <= MAX_EMAIL_LENGTH and bool(EMAIL_PATTERN.fullmatch(email))


def is_same_email(first: str, second: str) -> bool:
    return first.strip().lower() == second.strip().lower()


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_create_request(data: Mapping[str, Any]) -> ValidationResult:
    """Validate a submit payload (`new_email`, `reason`, `custom_reason`)."""
    errors: List[str] = []

    new_email = data.get("new_email")
    if _blank(new_email):
        errors.append("New email is required")
    elif not is_valid_email(new_email):
        errors.append("Invalid email format")

    reason = data.get("reason")
    if _blank(reason):
        errors.append("Reason is required")
    elif reason not in _REASONS:
        errors.append(f"Reason must be one of: {', '.join(_REASONS)}")
    elif reason == ChangeReason.OTHER.value:
        custom_reason = data.get("custom_reason")
        if _blank(custom_reason):
            errors.append("Custom reason is required when reason is 'other'")
        elif len(custom_reason) > MAX_CUSTOM_REASON_LENGTH:
            errors.append(f"Custom reason must be {MAX_CUSTOM_REASON_LENGTH} characters or less")

    return ValidationResult.from_errors(errors)


def validate_verify_request(data: Mapping[str, Any]) -> ValidationResult:
    errors: List[str] = []
    if _blank(data.get("token")):
        errors.append("Verification token is required")
    errors.extend(_email_type_errors(data.get("email_type")))
    return ValidationResult.from_errors(errors)


def validate_resend_request(data: Mapping[str, Any]) -> ValidationResult:
    return ValidationResult.from_errors(_email_type_errors(data.get("email_type")))


def _email_type_errors(email_type: Any) -> List[str]:
    if _blank(email_type):
        return ["Email type is required"]
    if email_type not in _EMAIL_TYPES:
        return ["Email type must be 'current' or 'new'"]
    return []


def validate_approve_request(data: Mapping[str, Any]) -> ValidationResult:
    errors: List[str] = []
    notes = data.get("approval_notes")
    if notes is not None and len(notes) > MAX_NOTES_LENGTH:
        errors.append(f"Approval notes must be {MAX_NOTES_LENGTH} characters or less")
    return ValidationResult.from_errors(errors)


def validate_reject_request(data: Mapping[str, Any]) -> ValidationResult:
    errors: List[str] = []
    reason = data.get("rejection_reason")
    if _blank(reason):
        errors.append("Rejection reason is required")
    elif len(reason) > MAX_NOTES_LENGTH:
        errors.append(f"Rejection reason must be {MAX_NOTES_LENGTH} characters or less")
    return ValidationResult.from_errors(errors)


def validate_list_filters(data: Mapping[str, Any]) -> ValidationResult:
    """Validate listing filters; absent values fall back to defaults later."""
    errors: List[str] = []

    limit = data.get("limit")
    if limit is not None and (not isinstance(limit, int) or isinstance(limit, bool) or not 1 <= limit <= MAX_LIST_LIMIT):
        errors.append(f"Limit must be between 1 and {MAX_LIST_LIMIT}")

    status = data.get("status")
    if status is not None and status not in _STATUSES:
        errors.append(f"Status must be one of: {', '.join(_STATUSES)}")

    sort_by = data.get("sort_by")
    if sort_by is not None and sort_by not in SORT_FIELDS:
        errors.append(f"Sort field must be one of: {', '.join(SORT_FIELDS)}")

    sort_order = data.get("sort_order")
    if sort_order is not None and sort_order not in SORT_ORDERS:
        errors.append("Sort order must be 'asc' or 'desc'")

    return ValidationResult.from_errors(errors)


def validate_business_rules(
    current_email: str,
    new_email: str,
    has_active_request: bool,
    last_request_at: Optional[datetime] = None,
    now: Optional[datetime] = None,
    cooldown_hours: int = DEFAULT_COOLDOWN_HOURS,
) -> ValidationResult:
    """Check the stateful rules of a submission.

    Errors are `EmailChangeErrorCode` members, in the order the rules are
    evaluated; callers answer with the first one.
    """
    errors: List[str] = []

    if is_same_email(current_email, new_email):
        errors.append(EmailChangeErrorCode.SAME_AS_CURRENT_EMAIL)

    if has_active_request:
        errors.append(EmailChangeErrorCode.ACTIVE_REQUEST_EXISTS)

    if last_request_at is not None and cooldown_hours > 0:
        check_time = now or datetime.now(timezone.utc)
        if check_time - last_request_at < timedelta(hours=cooldown_hours):
            errors.append(EmailChangeErrorCode.COOLDOWN_ACTIVE)

    return ValidationResult.from_errors(errors)


def is_token_expired(expires_at: datetime, now: Optional[datetime] = None) -> bool:
    return is_expired(expires_at, now)


def is_token_valid(
    token: str, stored_hash: Optional[str], expires_at: datetime, now: Optional[datetime] = None
) -> bool:
    """Format-valid, matching the stored hash, and not expired."""
    if not VerificationToken.is_valid_format(token):
        return False
    candidate = VerificationToken(value=token, expires_at=expires_at)
    return candidate.matches(stored_hash) and not candidate.is_expired(now)
