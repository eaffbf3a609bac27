from .email_change_validation import (
    ValidationResult,
    is_same_email,
    is_token_expired,
    is_token_valid,
    is_valid_email,
    validate_approve_request,
    validate_business_rules,
    validate_create_request,
    validate_list_filters,
    validate_reject_request,
    validate_resend_request,
    validate_verify_request,
)

__all__ = [
    "ValidationResult",
    "is_same_email",
    "is_token_expired",
    "is_token_valid",
    "is_valid_email",
    "validate_approve_request",
    "validate_business_rules",
    "validate_create_request",
    "validate_list_filters",
    "validate_reject_request",
    "validate_resend_request",
    "validate_verify_request",
]
