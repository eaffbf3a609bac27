"""Resend Verification Service."""

from datetime import datetime, timedelta
from typing import Callable, Optional

import structlog

from timeledger.core.exceptions import EmailChangeError, EmailChangeErrorCode, EmailServiceError
from timeledger.core.logging import mask_email
from timeledger.domain.entities.email_change_request import EmailType, RequestStatus
from timeledger.domain.entities.principal import Principal
from timeledger.domain.interfaces.repositories import IEmailChangeRepository, IUserRepository
from timeledger.domain.interfaces.services import IEmailChangeNotificationService
from timeledger.domain.services.email_change.base import EmailChangeServiceBase, utcnow
from timeledger.domain.services.email_change.results import ResendResult
from timeledger.domain.validation.email_change_validation import validate_resend_request

logger = structlog.get_logger(__name__)

DEFAULT_RESEND_LIMIT_PER_HOUR = 3


class ResendVerificationService(EmailChangeServiceBase):
    """Re-issues the verification link of one address.

    A fresh token replaces the stored hash for that side, so the previous
    link stops working. The shared expiry restarts for both sides.
    """

    def __init__(
        self,
        email_change_repository: IEmailChangeRepository,
        user_repository: IUserRepository,
        notification_service: IEmailChangeNotificationService,
        resend_limit_per_hour: int = DEFAULT_RESEND_LIMIT_PER_HOUR,
        clock: Callable[[], datetime] = utcnow,
    ):
        super().__init__(email_change_repository, user_repository, notification_service, clock)
        self._resend_limit = resend_limit_per_hour
        logger.info("ResendVerificationService initialized")

    async def resend(
        self,
        principal: Principal,
        request_id: str,
        email_type: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ) -> ResendResult:
        """Issue a new token for `email_type` and email it.

        Unlike the submit flow, a delivery failure fails the operation: the
        old link is already invalid, so the caller must learn the new one
        never arrived.

        Raises:
            EmailChangeError: INVALID_REQUEST_DATA, EMAIL_CHANGE_REQUEST_NOT_FOUND,
                FORBIDDEN, EMAIL_ALREADY_VERIFIED, VERIFICATION_RATE_LIMITED or
                EMAIL_SEND_FAILED.
        """
        validation = validate_resend_request({"email_type": email_type})
        if not validation.is_valid:
            self._raise_invalid(validation.errors, request_id=request_id, correlation_id=correlation_id)
        side = EmailType(email_type)

        request = await self._get_request(request_id)
        self._ensure_owner_or_admin(principal, request)

        if request.status is not RequestStatus.PENDING_VERIFICATION:
            raise EmailChangeError(
                EmailChangeErrorCode.INVALID_REQUEST_DATA,
                f"Verification can only be resent while pending verification (status: {request.status.value})",
            )
        if request.is_verified(side):
            raise EmailChangeError(EmailChangeErrorCode.EMAIL_ALREADY_VERIFIED)

        now = self._clock()
        recent = await self._repository.count_recent_resends(request.id, now - timedelta(hours=1))
        if recent >= self._resend_limit:
            logger.warning(
                "Verification resend limit reached",
                request_id=request.id,
                recent_resends=recent,
                limit=self._resend_limit,
                correlation_id=correlation_id,
            )
            raise EmailChangeError(EmailChangeErrorCode.VERIFICATION_RATE_LIMITED)

        updated = await self._repository.regenerate_tokens(
            request.id,
            side,
            performed_by=principal.user_id,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        user_name = await self._display_name(updated.user_id) or updated.current_email
        try:
            await self._notifications.send_verification_email(
                updated, side, updated.issued_token(side), user_name
            )
        except EmailServiceError as e:
            logger.error(
                "Verification resend delivery failed",
                request_id=updated.id,
                email_type=side.value,
                error=str(e),
                correlation_id=correlation_id,
            )
            raise EmailChangeError(EmailChangeErrorCode.EMAIL_SEND_FAILED) from e

        logger.info(
            "Verification email resent",
            request_id=updated.id,
            email_type=side.value,
            to_email=mask_email(updated.email_for(side)),
            correlation_id=correlation_id,
        )
        return ResendResult(
            request_id=updated.id,
            email_type=side,
            email_address=updated.email_for(side),
            resent_at=now,
            expires_at=updated.verification_tokens_expires_at,
        )
