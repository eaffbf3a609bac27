"""Approve Email Change Service."""

from datetime import timedelta
from typing import Optional

import structlog

from timeledger.core.exceptions import EmailChangeError, EmailChangeErrorCode
from timeledger.domain.entities.email_change_request import RequestStatus
from timeledger.domain.entities.principal import Principal
from timeledger.domain.services.email_change.base import EmailChangeServiceBase
from timeledger.domain.services.email_change.results import ApproveResult
from timeledger.domain.validation.email_change_validation import validate_approve_request

logger = structlog.get_logger(__name__)

PROCESSING_ETA_HOURS = 24


class ApproveEmailChangeService(EmailChangeServiceBase):
    """Admin decision that lets a fully verified request proceed."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        logger.info("ApproveEmailChangeService initialized")

    async def approve(
        self,
        principal: Principal,
        request_id: str,
        approval_notes: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ) -> ApproveResult:
        """Approve a request that is pending approval.

        Args:
            principal: Acting administrator
            request_id: Request to approve
            approval_notes: Optional notes kept on the request
            ip_address: Optional client IP for the audit trail
            user_agent: Optional client user agent for the audit trail
            correlation_id: Optional correlation ID for request tracking

        Returns:
            ApproveResult with the approved request and the processing ETA.

        Raises:
            EmailChangeError: INSUFFICIENT_APPROVAL_PERMISSIONS,
                INVALID_REQUEST_DATA, EMAIL_CHANGE_REQUEST_NOT_FOUND
                or REQUEST_NOT_PENDING_APPROVAL.
        """
        if not principal.is_admin:
            logger.warning(
                "Non-admin attempted to approve email change",
                actor_id=principal.user_id,
                request_id=request_id,
                correlation_id=correlation_id,
            )
            raise EmailChangeError(EmailChangeErrorCode.INSUFFICIENT_APPROVAL_PERMISSIONS)

        validation = validate_approve_request({"approval_notes": approval_notes})
        if not validation.is_valid:
            self._raise_invalid(validation.errors, request_id=request_id, correlation_id=correlation_id)

        request = await self._get_request(request_id)
        if request.status is not RequestStatus.PENDING_APPROVAL:
            raise EmailChangeError(
                EmailChangeErrorCode.REQUEST_NOT_PENDING_APPROVAL,
                f"Request is not pending approval (status: {request.status.value})",
            )
        if not request.is_fully_verified:
            raise EmailChangeError(
                EmailChangeErrorCode.INVALID_REQUEST_DATA,
                "Both email addresses must be verified before approval",
            )

        eta = self._clock() + timedelta(hours=PROCESSING_ETA_HOURS)
        approved = await self._repository.approve(
            request.id,
            approved_by=principal.user_id,
            notes=approval_notes,
            estimated_completion_time=eta,
            ip_address=ip_address,
            user_agent=user_agent,
        )

        approver_name = await self._display_name(principal.user_id) or principal.user_id
        user_name = await self._display_name(approved.user_id) or approved.current_email
        await self._notify(
            "approved",
            self._notifications.send_approval_notification(approved, user_name, approver_name),
            request_id=approved.id,
            correlation_id=correlation_id,
        )

        logger.info(
            "Email change request approved",
            request_id=approved.id,
            approved_by=principal.user_id,
            correlation_id=correlation_id,
        )
        return ApproveResult(
            request=approved,
            approved_by_id=principal.user_id,
            approved_by_name=approver_name,
            estimated_completion_time=eta,
        )
