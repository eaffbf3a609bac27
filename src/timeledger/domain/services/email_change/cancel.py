"""Cancel Email Change Service."""

from typing import Optional

import structlog

from timeledger.core.exceptions import EmailChangeError, EmailChangeErrorCode
from timeledger.domain.entities.email_change_request import CANCELLABLE_STATUSES, RequestStatus
from timeledger.domain.entities.principal import Principal
from timeledger.domain.services.email_change.base import EmailChangeServiceBase
from timeledger.domain.services.email_change.results import CancelResult

logger = structlog.get_logger(__name__)


class CancelEmailChangeService(EmailChangeServiceBase):
    """Lets the owner (or an admin) withdraw a request before approval."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        logger.info("CancelEmailChangeService initialized")

    async def cancel(
        self,
        principal: Principal,
        request_id: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ) -> CancelResult:
        """Cancel a request that is pending verification or approval.

        Raises:
            EmailChangeError: EMAIL_CHANGE_REQUEST_NOT_FOUND, FORBIDDEN,
                REQUEST_ALREADY_COMPLETED or CANNOT_CANCEL_REQUEST.
        """
        request = await self._get_request(request_id)
        self._ensure_owner_or_admin(principal, request)

        if request.status is RequestStatus.COMPLETED:
            raise EmailChangeError(EmailChangeErrorCode.REQUEST_ALREADY_COMPLETED)
        if request.status not in CANCELLABLE_STATUSES:
            raise EmailChangeError(
                EmailChangeErrorCode.CANNOT_CANCEL_REQUEST,
                f"Request cannot be cancelled (status: {request.status.value})",
            )

        cancelled = await self._repository.cancel(
            request.id,
            cancelled_by=principal.user_id,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        logger.info(
            "Email change request cancelled",
            request_id=cancelled.id,
            cancelled_by=principal.user_id,
            correlation_id=correlation_id,
        )
        return CancelResult(
            request=cancelled,
            cancelled_by=principal.user_id,
            cancelled_by_name=await self._display_name(principal.user_id) or principal.user_id,
        )
