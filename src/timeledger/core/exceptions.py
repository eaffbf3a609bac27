from __future__ import annotations

"""Centralized, structured exception hierarchy for TimeLedger.

Every application error carries a machine-readable `code` and a human-readable
`message`. Email-change failures additionally carry a member of
`EmailChangeErrorCode` and the HTTP status they map to, so the API layer never
has to inspect message text to decide how to answer.
"""

from enum import Enum
from typing import Any, Dict, Final, Optional

__all__: Final = [
    "TimeLedgerError",
    "AuthenticationError",
    "AuthorizationError",
    "DatabaseError",
    "ConditionalCheckFailedError",
    "EmailServiceError",
    "TemplateRenderError",
    "IdentityProviderError",
    "IdentityUserNotFoundError",
    "EmailChangeErrorCode",
    "EmailChangeError",
]


class TimeLedgerError(Exception):
    """Base exception class for all custom errors in the TimeLedger application.

    Attributes:
        message (str): A human-readable error message, suitable for logging.
        code (str): A unique, machine-readable error code.
    """

    message: str
    code: str = "generic_error"

    def __init__(self, message: str, code: str = "generic_error"):
        self.message = message
        self.code = code
        Exception.__init__(self, self.message)

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Auth-related errors
# ---------------------------------------------------------------------------


class AuthenticationError(TimeLedgerError):
    """Raised when no valid principal can be resolved. Maps to `401`."""

    def __init__(self, message: str = "Authentication required", code: str = "UNAUTHORIZED"):
        super().__init__(message, code)


class AuthorizationError(TimeLedgerError):
    """Raised when an authenticated caller lacks the required role. Maps to `403`."""

    def __init__(self, message: str = "Insufficient permissions", code: str = "FORBIDDEN"):
        super().__init__(message, code)


# ---------------------------------------------------------------------------
# Infrastructure errors
# ---------------------------------------------------------------------------


class DatabaseError(TimeLedgerError):
    """Raised for unexpected persistence failures. Maps to `500`."""

    def __init__(self, message: str = "A database error occurred", code: str = "database_error"):
        super().__init__(message, code)


class ConditionalCheckFailedError(DatabaseError):
    """Raised by a document store when a conditional write does not apply.

    Covers both a failed ``update`` condition and a unique-key collision on
    ``insert``. The item is left untouched.
    """

    def __init__(self, message: str = "Conditional check failed", code: str = "conditional_check_failed"):
        super().__init__(message, code)


class EmailServiceError(TimeLedgerError):
    """Raised when an email cannot be rendered or delivered."""

    def __init__(self, message: str = "Email delivery failed", code: str = "email_service_error"):
        super().__init__(message, code)


class TemplateRenderError(EmailServiceError):
    """Raised when an email template fails to render."""

    def __init__(self, message: str = "Email template rendering failed", code: str = "template_render_error"):
        super().__init__(message, code)


class IdentityProviderError(TimeLedgerError):
    """Raised when the external identity provider rejects or fails a call."""

    def __init__(self, message: str = "Identity provider call failed", code: str = "identity_provider_error"):
        super().__init__(message, code)


class IdentityUserNotFoundError(IdentityProviderError):
    """Raised when the identity provider has no user under the given name."""

    def __init__(self, message: str = "User not found in identity provider", code: str = "identity_user_not_found"):
        super().__init__(message, code)


# ---------------------------------------------------------------------------
# Email-change workflow errors
# ---------------------------------------------------------------------------


class EmailChangeErrorCode(str, Enum):
    """Symbolic error kinds of the email-change workflow."""

    EMAIL_CHANGE_REQUEST_NOT_FOUND = "EMAIL_CHANGE_REQUEST_NOT_FOUND"
    INVALID_REQUEST_DATA = "INVALID_REQUEST_DATA"
    EMAIL_ALREADY_EXISTS = "EMAIL_ALREADY_EXISTS"
    ACTIVE_REQUEST_EXISTS = "ACTIVE_REQUEST_EXISTS"
    SAME_AS_CURRENT_EMAIL = "SAME_AS_CURRENT_EMAIL"
    COOLDOWN_ACTIVE = "COOLDOWN_ACTIVE"
    INVALID_VERIFICATION_TOKEN = "INVALID_VERIFICATION_TOKEN"
    VERIFICATION_TOKEN_EXPIRED = "VERIFICATION_TOKEN_EXPIRED"
    EMAIL_ALREADY_VERIFIED = "EMAIL_ALREADY_VERIFIED"
    REQUEST_NOT_PENDING_APPROVAL = "REQUEST_NOT_PENDING_APPROVAL"
    REQUEST_NOT_APPROVED = "REQUEST_NOT_APPROVED"
    CANNOT_APPROVE_OWN_REQUEST = "CANNOT_APPROVE_OWN_REQUEST"
    CANNOT_CANCEL_REQUEST = "CANNOT_CANCEL_REQUEST"
    REQUEST_ALREADY_COMPLETED = "REQUEST_ALREADY_COMPLETED"
    INSUFFICIENT_APPROVAL_PERMISSIONS = "INSUFFICIENT_APPROVAL_PERMISSIONS"
    VERIFICATION_RATE_LIMITED = "VERIFICATION_RATE_LIMITED"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    EMAIL_SEND_FAILED = "EMAIL_SEND_FAILED"
    EMAIL_PROCESSING_FAILED = "EMAIL_PROCESSING_FAILED"


_DEFAULTS: Dict[EmailChangeErrorCode, tuple[int, str]] = {
    EmailChangeErrorCode.EMAIL_CHANGE_REQUEST_NOT_FOUND: (404, "Email change request not found"),
    EmailChangeErrorCode.INVALID_REQUEST_DATA: (400, "Invalid request data"),
    EmailChangeErrorCode.EMAIL_ALREADY_EXISTS: (409, "Email address is already in use"),
    EmailChangeErrorCode.ACTIVE_REQUEST_EXISTS: (409, "An active email change request already exists"),
    EmailChangeErrorCode.SAME_AS_CURRENT_EMAIL: (409, "New email must be different from current email"),
    EmailChangeErrorCode.COOLDOWN_ACTIVE: (409, "Please wait before submitting another email change request"),
    EmailChangeErrorCode.INVALID_VERIFICATION_TOKEN: (404, "Invalid or expired verification token"),
    EmailChangeErrorCode.VERIFICATION_TOKEN_EXPIRED: (410, "Verification token has expired"),
    EmailChangeErrorCode.EMAIL_ALREADY_VERIFIED: (410, "Email address has already been verified"),
    EmailChangeErrorCode.REQUEST_NOT_PENDING_APPROVAL: (400, "Request is not pending approval"),
    EmailChangeErrorCode.REQUEST_NOT_APPROVED: (400, "Request must be approved before processing"),
    EmailChangeErrorCode.CANNOT_APPROVE_OWN_REQUEST: (403, "You cannot approve or reject your own request"),
    EmailChangeErrorCode.CANNOT_CANCEL_REQUEST: (400, "Request cannot be cancelled in its current state"),
    EmailChangeErrorCode.REQUEST_ALREADY_COMPLETED: (400, "Request has already been completed"),
    EmailChangeErrorCode.INSUFFICIENT_APPROVAL_PERMISSIONS: (403, "Only administrators can perform this action"),
    EmailChangeErrorCode.VERIFICATION_RATE_LIMITED: (429, "Too many verification attempts, please try again later"),
    EmailChangeErrorCode.USER_NOT_FOUND: (404, "User not found"),
    EmailChangeErrorCode.FORBIDDEN: (403, "You do not have access to this email change request"),
    EmailChangeErrorCode.EMAIL_SEND_FAILED: (502, "Failed to send verification email"),
    EmailChangeErrorCode.EMAIL_PROCESSING_FAILED: (502, "Failed to process email change"),
}


class EmailChangeError(TimeLedgerError):
    """Typed failure of an email-change operation.

    The `error_code` enum decides both the caller-facing code and the default
    HTTP status; `message` and `status_code` may be overridden for a specific
    situation (for example a malformed token is a `400` even though an unknown
    token is a `404`).

    Attributes:
        error_code (EmailChangeErrorCode): Symbolic error kind.
        status_code (int): HTTP status the API layer answers with.
        details (dict | None): Optional structured context (validation errors).
    """

    def __init__(
        self,
        error_code: EmailChangeErrorCode,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        default_status, default_message = _DEFAULTS[error_code]
        self.error_code = error_code
        self.status_code = status_code or default_status
        self.details = details
        super().__init__(message or default_message, error_code.value)
