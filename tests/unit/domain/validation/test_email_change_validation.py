"""Tests for the email change validation rules.

Shape validation reports every problem of a payload; business rules report
error codes in evaluation order.
"""

from datetime import datetime, timedelta, timezone

import pytest

from timeledger.core.exceptions import EmailChangeErrorCode
from timeledger.domain.validation.email_change_validation import (
    is_same_email,
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
from timeledger.domain.value_objects.verification_token import VerificationToken

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class TestValidateCreateRequest:
    def test_valid_payload(self):
        result = validate_create_request({"new_email": "new@acme.com", "reason": "personal_preference"})

        assert result.is_valid
        assert result.errors == []

    def test_missing_fields_report_every_error(self):
        result = validate_create_request({})

        assert not result.is_valid
        assert result.errors == ["New email is required", "Reason is required"]

    def test_invalid_email_format(self):
        result = validate_create_request({"new_email": "not-an-email", "reason": "other", "custom_reason": "x"})

        assert result.first_error == "Invalid email format"

    def test_unknown_reason(self):
        result = validate_create_request({"new_email": "new@acme.com", "reason": "boredom"})

        assert result.first_error.startswith("Reason must be one of:")

    def test_other_requires_custom_reason(self):
        result = validate_create_request({"new_email": "new@acme.com", "reason": "other", "custom_reason": "  "})

        assert result.errors == ["Custom reason is required when reason is 'other'"]

    def test_custom_reason_length_limit(self):
        result = validate_create_request(
            {"new_email": "new@acme.com", "reason": "other", "custom_reason": "x" * 501}
        )

        assert result.errors == ["Custom reason must be 500 characters or less"]

    def test_custom_reason_ignored_for_other_reasons(self):
        result = validate_create_request(
            {"new_email": "new@acme.com", "reason": "name_change", "custom_reason": "x" * 900}
        )

        assert result.is_valid


class TestEmailHelpers:
    @pytest.mark.parametrize("email", ["a@b.co", "jane.doe+tag@sub.acme.com"])
    def test_valid_emails(self, email):
        assert is_valid_email(email)

    @pytest.mark.parametrize("email", ["", "plain", "a@b", "a b@c.com", "@acme.com", "jane@acme.com\n", None, 42])
    def test_invalid_emails(self, email):
        assert not is_valid_email(email)

    def test_overlong_email_is_invalid(self):
        assert not is_valid_email("a" * 310 + "@example.com")

    def test_same_email_ignores_case_and_whitespace(self):
        assert is_same_email(" Jane@Acme.com ", "jane@acme.com")


class TestVerifyAndResendValidation:
    def test_verify_requires_token_and_type(self):
        result = validate_verify_request({"token": "", "email_type": None})

        assert result.errors == ["Verification token is required", "Email type is required"]

    def test_verify_rejects_unknown_type(self):
        result = validate_verify_request({"token": "abc", "email_type": "backup"})

        assert result.errors == ["Email type must be 'current' or 'new'"]

    def test_resend_accepts_known_types(self):
        assert validate_resend_request({"email_type": "current"}).is_valid
        assert validate_resend_request({"email_type": "new"}).is_valid


class TestDecisionValidation:
    def test_approval_notes_are_optional(self):
        assert validate_approve_request({"approval_notes": None}).is_valid

    def test_approval_notes_length_limit(self):
        result = validate_approve_request({"approval_notes": "n" * 1001})

        assert result.errors == ["Approval notes must be 1000 characters or less"]

    def test_rejection_reason_required(self):
        assert validate_reject_request({"rejection_reason": "   "}).errors == ["Rejection reason is required"]

    def test_rejection_reason_length_limit(self):
        result = validate_reject_request({"rejection_reason": "r" * 1001})

        assert result.errors == ["Rejection reason must be 1000 characters or less"]


class TestValidateListFilters:
    def test_absent_filters_are_valid(self):
        assert validate_list_filters({}).is_valid

    @pytest.mark.parametrize("limit", [0, 101, -1, True])
    def test_limit_out_of_range(self, limit):
        assert validate_list_filters({"limit": limit}).errors == ["Limit must be between 1 and 100"]

    def test_unknown_status_sort_and_order(self):
        result = validate_list_filters({"status": "lost", "sort_by": "user_id", "sort_order": "up"})

        assert len(result.errors) == 3


class TestValidateBusinessRules:
    def test_all_rules_pass(self):
        result = validate_business_rules("jane@acme.com", "jane.doe@acme.com", False, None, NOW)

        assert result.is_valid

    def test_errors_follow_evaluation_order(self):
        result = validate_business_rules(
            "jane@acme.com",
            "JANE@acme.com",
            True,
            last_request_at=NOW - timedelta(hours=1),
            now=NOW,
        )

        assert result.errors == [
            EmailChangeErrorCode.SAME_AS_CURRENT_EMAIL,
            EmailChangeErrorCode.ACTIVE_REQUEST_EXISTS,
            EmailChangeErrorCode.COOLDOWN_ACTIVE,
        ]

    def test_cooldown_elapsed(self):
        result = validate_business_rules(
            "jane@acme.com", "jane.doe@acme.com", False, last_request_at=NOW - timedelta(hours=24), now=NOW
        )

        assert result.is_valid

    def test_zero_cooldown_disables_rule(self):
        result = validate_business_rules(
            "jane@acme.com", "jane.doe@acme.com", False, last_request_at=NOW, now=NOW, cooldown_hours=0
        )

        assert result.is_valid


class TestIsTokenValid:
    def test_matching_unexpired_token(self):
        token = VerificationToken.generate(NOW)

        assert is_token_valid(token.value, token.hashed, token.expires_at, NOW)

    def test_expired_token(self):
        token = VerificationToken.generate(NOW, expiry_hours=1)

        assert not is_token_valid(token.value, token.hashed, token.expires_at, NOW + timedelta(hours=2))

    def test_malformed_token(self):
        assert not is_token_valid("short", "hash", NOW, NOW)
