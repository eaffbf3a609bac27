"""Tests for the EmailChangeRequest aggregate and its approval policy."""

from datetime import datetime, timedelta, timezone

import pytest

from timeledger.domain.entities.email_change_request import (
    ChangeReason,
    EmailChangeRequest,
    EmailType,
    RequestStatus,
    extract_domain,
    requires_admin_approval,
)

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def make_request(**overrides) -> EmailChangeRequest:
    data = dict(
        id="req-1",
        user_id="user-1",
        current_email="jane@acme.com",
        new_email="jane.doe@acme.com",
        reason=ChangeReason.PERSONAL_PREFERENCE,
        current_email_token_hash="a" * 64,
        new_email_token_hash="b" * 64,
        verification_tokens_expires_at=NOW + timedelta(hours=24),
        requested_at=NOW,
        active_key="user-1",
    )
    data.update(overrides)
    return EmailChangeRequest(**data)


class TestApprovalPolicy:
    @pytest.mark.parametrize("reason", [ChangeReason.PERSONAL_PREFERENCE, ChangeReason.NAME_CHANGE])
    def test_auto_approval_reasons_on_same_domain(self, reason):
        assert requires_admin_approval(reason, "jane@acme.com", "jane.doe@acme.com") is False

    @pytest.mark.parametrize(
        "reason", [ChangeReason.COMPANY_CHANGE, ChangeReason.SECURITY_CONCERN, ChangeReason.OTHER]
    )
    def test_other_reasons_always_need_approval(self, reason):
        assert requires_admin_approval(reason, "jane@acme.com", "jane.doe@acme.com") is True

    def test_domain_change_needs_approval(self):
        assert requires_admin_approval(ChangeReason.NAME_CHANGE, "jane@acme.com", "jane@gmail.com") is True

    def test_domain_comparison_is_case_insensitive(self):
        assert requires_admin_approval(ChangeReason.NAME_CHANGE, "jane@ACME.com", "doe@acme.COM") is False

    def test_custom_auto_approval_reasons(self):
        assert requires_admin_approval(
            ChangeReason.PERSONAL_PREFERENCE, "a@acme.com", "b@acme.com", auto_approval_reasons=[]
        ) is True
        assert requires_admin_approval(
            ChangeReason.SECURITY_CONCERN,
            "a@acme.com",
            "b@acme.com",
            auto_approval_reasons=[ChangeReason.SECURITY_CONCERN],
        ) is False

    def test_extract_domain(self):
        assert extract_domain("Jane@Sub.Acme.com") == "sub.acme.com"
        assert extract_domain("no-at-sign") == ""


class TestEmailChangeRequest:
    def test_defaults_for_new_request(self):
        request = make_request()

        assert request.status is RequestStatus.PENDING_VERIFICATION
        assert request.is_active
        assert not request.is_terminal
        assert not request.is_fully_verified

    @pytest.mark.parametrize(
        "status,active,terminal",
        [
            (RequestStatus.PENDING_APPROVAL, True, False),
            (RequestStatus.APPROVED, True, False),
            (RequestStatus.COMPLETED, False, True),
            (RequestStatus.REJECTED, False, True),
            (RequestStatus.CANCELLED, False, True),
        ],
    )
    def test_status_classification(self, status, active, terminal):
        request = make_request(status=status)

        assert request.is_active is active
        assert request.is_terminal is terminal

    def test_side_accessors(self):
        request = make_request(current_email_verified=True)

        assert request.is_verified(EmailType.CURRENT)
        assert not request.is_verified(EmailType.NEW)
        assert request.email_for(EmailType.NEW) == "jane.doe@acme.com"
        assert request.token_hash_for(EmailType.CURRENT) == "a" * 64
        assert EmailType.CURRENT.other is EmailType.NEW

    def test_issued_tokens_are_not_serialized(self):
        request = make_request()
        request.attach_issued_token(EmailType.NEW, "c" * 64)

        assert request.issued_token(EmailType.NEW) == "c" * 64
        assert request.issued_token(EmailType.CURRENT) is None
        assert "c" * 64 not in request.model_dump_json()

    def test_reason_labels(self):
        assert ChangeReason.SECURITY_CONCERN.label == "Security Concern"

    def test_domain_change_property(self):
        assert make_request(new_email="jane@other.org").is_domain_change
        assert not make_request().is_domain_change
