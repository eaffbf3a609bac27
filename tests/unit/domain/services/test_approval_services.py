"""Tests for the admin decisions: ApproveEmailChangeService and RejectEmailChangeService."""

from datetime import timedelta

import pytest
import pytest_asyncio

from timeledger.core.exceptions import EmailChangeError, EmailChangeErrorCode, EmailServiceError
from timeledger.domain.entities.email_change_audit_log import AuditAction
from timeledger.domain.entities.email_change_request import ChangeReason, EmailType, RequestStatus


async def verified_request(repository, user):
    request = await repository.create_request(
        user_id=user.id,
        current_email=user.email,
        new_email=f"{user.id}@newco.com",
        reason=ChangeReason.COMPANY_CHANGE,
    )
    await repository.update_verification_status(request.id, EmailType.CURRENT)
    return await repository.update_verification_status(request.id, EmailType.NEW)


@pytest_asyncio.fixture
async def pending_approval(email_change_repository, employee):
    return await verified_request(email_change_repository, employee)


class TestApprove:
    @pytest.mark.asyncio
    async def test_admin_approves(
        self, approve_service, pending_approval, admin_principal, mock_notification_service, clock
    ):
        # Act
        result = await approve_service.approve(admin_principal, pending_approval.id, approval_notes="HR confirmed")

        # Assert
        assert result.request.status is RequestStatus.APPROVED
        assert result.request.approved_by == admin_principal.user_id
        assert result.request.approval_notes == "HR confirmed"
        assert result.approved_by_name == "Alex Admin"
        assert result.estimated_completion_time == clock.now + timedelta(hours=24)
        assert result.request.estimated_completion_time == result.estimated_completion_time
        request, user_name, approver_name = mock_notification_service.send_approval_notification.await_args.args
        assert (user_name, approver_name) == ("Jane Doe", "Alex Admin")

    @pytest.mark.asyncio
    async def test_approval_is_audited(self, approve_service, pending_approval, admin_principal, email_change_repository):
        await approve_service.approve(admin_principal, pending_approval.id, approval_notes="ok")

        log = await email_change_repository.get_audit_log(pending_approval.id)
        assert log[-1].action is AuditAction.APPROVED
        assert log[-1].performed_by == admin_principal.user_id
        assert log[-1].details == {"notes": "ok"}

    @pytest.mark.asyncio
    async def test_admin_may_approve_own_request(
        self, approve_service, email_change_repository, admin, admin_principal
    ):
        own = await verified_request(email_change_repository, admin)

        result = await approve_service.approve(admin_principal, own.id)

        assert result.request.status is RequestStatus.APPROVED

    @pytest.mark.asyncio
    async def test_notification_failure_does_not_undo_approval(
        self, approve_service, pending_approval, admin_principal, mock_notification_service
    ):
        mock_notification_service.send_approval_notification.side_effect = EmailServiceError()

        result = await approve_service.approve(admin_principal, pending_approval.id)

        assert result.request.status is RequestStatus.APPROVED

    @pytest.mark.asyncio
    async def test_member_cannot_approve(self, approve_service, pending_approval, other_principal):
        with pytest.raises(EmailChangeError) as exc_info:
            await approve_service.approve(other_principal, pending_approval.id)

        assert exc_info.value.error_code is EmailChangeErrorCode.INSUFFICIENT_APPROVAL_PERMISSIONS
        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_notes_too_long(self, approve_service, pending_approval, admin_principal):
        with pytest.raises(EmailChangeError) as exc_info:
            await approve_service.approve(admin_principal, pending_approval.id, approval_notes="n" * 1001)

        assert exc_info.value.error_code is EmailChangeErrorCode.INVALID_REQUEST_DATA

    @pytest.mark.asyncio
    async def test_request_still_pending_verification(self, approve_service, submitted_request, admin_principal):
        with pytest.raises(EmailChangeError) as exc_info:
            await approve_service.approve(admin_principal, submitted_request.id)

        assert exc_info.value.error_code is EmailChangeErrorCode.REQUEST_NOT_PENDING_APPROVAL

    @pytest.mark.asyncio
    async def test_approving_twice(self, approve_service, pending_approval, admin_principal):
        await approve_service.approve(admin_principal, pending_approval.id)

        with pytest.raises(EmailChangeError) as exc_info:
            await approve_service.approve(admin_principal, pending_approval.id)

        assert exc_info.value.error_code is EmailChangeErrorCode.REQUEST_NOT_PENDING_APPROVAL

    @pytest.mark.asyncio
    async def test_unknown_request(self, approve_service, admin_principal):
        with pytest.raises(EmailChangeError) as exc_info:
            await approve_service.approve(admin_principal, "missing")

        assert exc_info.value.error_code is EmailChangeErrorCode.EMAIL_CHANGE_REQUEST_NOT_FOUND


class TestReject:
    @pytest.mark.asyncio
    async def test_admin_rejects_pending_approval(
        self, reject_service, pending_approval, admin_principal, mock_notification_service, email_change_repository
    ):
        result = await reject_service.reject(admin_principal, pending_approval.id, "  Domain not owned  ")

        assert result.request.status is RequestStatus.REJECTED
        assert result.request.rejection_reason == "Domain not owned"
        assert result.rejected_by_name == "Alex Admin"
        assert await email_change_repository.has_active_request(pending_approval.user_id) is False
        mock_notification_service.send_rejection_notification.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_admin_rejects_pending_verification(self, reject_service, submitted_request, admin_principal):
        result = await reject_service.reject(admin_principal, submitted_request.id, "Suspicious")

        assert result.request.status is RequestStatus.REJECTED

    @pytest.mark.asyncio
    async def test_admin_cannot_reject_own_request(
        self, reject_service, email_change_repository, admin, admin_principal
    ):
        own = await verified_request(email_change_repository, admin)

        with pytest.raises(EmailChangeError) as exc_info:
            await reject_service.reject(admin_principal, own.id, "Changed my mind")

        assert exc_info.value.error_code is EmailChangeErrorCode.CANNOT_APPROVE_OWN_REQUEST

    @pytest.mark.asyncio
    async def test_reason_required(self, reject_service, pending_approval, admin_principal):
        with pytest.raises(EmailChangeError) as exc_info:
            await reject_service.reject(admin_principal, pending_approval.id, "   ")

        assert exc_info.value.error_code is EmailChangeErrorCode.INVALID_REQUEST_DATA

    @pytest.mark.asyncio
    async def test_member_cannot_reject(self, reject_service, pending_approval, other_principal):
        with pytest.raises(EmailChangeError) as exc_info:
            await reject_service.reject(other_principal, pending_approval.id, "No")

        assert exc_info.value.error_code is EmailChangeErrorCode.INSUFFICIENT_APPROVAL_PERMISSIONS

    @pytest.mark.asyncio
    async def test_approved_request_cannot_be_rejected(
        self, reject_service, approve_service, pending_approval, admin_principal
    ):
        await approve_service.approve(admin_principal, pending_approval.id)

        with pytest.raises(EmailChangeError) as exc_info:
            await reject_service.reject(admin_principal, pending_approval.id, "Too late")

        assert exc_info.value.error_code is EmailChangeErrorCode.REQUEST_NOT_PENDING_APPROVAL
