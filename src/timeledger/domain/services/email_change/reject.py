"""Reject Email Change Service."""

from typing import Optional

import structlog

from timeledger.core.exceptions import EmailChangeError, EmailChangeErrorCode
from timeledger.domain.entities.email_change_request import REJECTABLE_STATUSES
from timeledger.domain.entities.principal import Principal
from timeledger.domain.services.email_change.base import EmailChangeServiceBase
from timeledger.domain.services.email_change.results import RejectResult
from timeledger.domain.validation.email_change_validation import validate_reject_request

logger = structlog.get_logger(__name__)


class RejectEmailChangeService(EmailChangeServiceBase):
    """Admin decision that ends a pending request."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        logger.info("RejectEmailChangeService initialized")

    async def reject(
        self,
        principal: Principal,
        request_id: str,
        rejection_reason: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ) -> RejectResult:
        """Reject a request that is still pending verification or approval.

        An administrator may not reject their own request.

        Raises:
            EmailChangeError: INSUFFICIENT_APPROVAL_PERMISSIONS,
                INVALID_REQUEST_DATA, EMAIL_CHANGE_REQUEST_NOT_FOUND,
                CANNOT_APPROVE_OWN_REQUEST or REQUEST_NOT_PENDING_APPROVAL.
        """
        if not principal.is_admin:
            logger.warning(
                "Non-admin attempted to reject email change",
                actor_id=principal.user_id,
                request_id=request_id,
                correlation_id=correlation_id,
            )
            raise EmailChangeError(EmailChangeErrorCode.INSUFFICIENT_APPROVAL_PERMISSIONS)

        validation = validate_reject_request({"rejection_reason": rejection_reason})
        if not validation.is_valid:
            self._raise_invalid(validation.errors, request_id=request_id, correlation_id=correlation_id)

        request = await self._get_request(request_id)
        if request.user_id == principal.user_id:
            raise EmailChangeError(EmailChangeErrorCode.CANNOT_APPROVE_OWN_REQUEST)
        if request.status not in REJECTABLE_STATUSES:
            raise EmailChangeError(
                EmailChangeErrorCode.REQUEST_NOT_PENDING_APPROVAL,
                f"Request cannot be rejected (status: {request.status.value})",
            )

        rejected = await self._repository.reject(
            request.id,
            rejected_by=principal.user_id,
            reason=rejection_reason.strip(),
            ip_address=ip_address,
            user_agent=user_agent,
        )

        rejecter_name = await self._display_name(principal.user_id) or principal.user_id
        user_name = await self._display_name(rejected.user_id) or rejected.current_email
        await self._notify(
            "rejected",
            self._notifications.send_rejection_notification(rejected, user_name, rejecter_name),
            request_id=rejected.id,
            correlation_id=correlation_id,
        )

        logger.info(
            "Email change request rejected",
            request_id=rejected.id,
            rejected_by=principal.user_id,
            correlation_id=correlation_id,
        )
        return RejectResult(request=rejected, rejected_by_id=principal.user_id, rejected_by_name=rejecter_name)
