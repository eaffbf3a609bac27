"""Verify Email Change Service.

Consumes a verification link. The caller is identified by the token alone,
so this is the one lifecycle operation that needs no principal.
"""

from typing import Optional

import structlog

from timeledger.core.exceptions import EmailChangeError, EmailChangeErrorCode
from timeledger.core.logging import token_prefix
from timeledger.domain.entities.email_change_request import EmailChangeRequest, EmailType, RequestStatus
from timeledger.domain.services.email_change.base import EmailChangeServiceBase
from timeledger.domain.services.email_change.results import VerificationNextStep, VerifyResult
from timeledger.domain.validation.email_change_validation import is_token_expired, validate_verify_request
from timeledger.domain.value_objects.verification_token import VerificationToken

logger = structlog.get_logger(__name__)

_MESSAGES = {
    VerificationNextStep.VERIFY_OTHER_EMAIL: "Email verified. Please verify your {other} email address as well.",
    VerificationNextStep.PENDING_APPROVAL: "Both email addresses verified. Your request is awaiting admin approval.",
    VerificationNextStep.AUTO_APPROVED: "Both email addresses verified. Your request has been approved automatically.",
}


class VerifyEmailChangeService(EmailChangeServiceBase):
    """Service for verifying one address of an email change request."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        logger.info("VerifyEmailChangeService initialized")

    async def verify(
        self,
        token: str,
        email_type: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ) -> VerifyResult:
        """Mark the address behind `token` as verified.

        Workflow:
        1. Validate the payload and the token format
        2. Resolve the request by token hash
        3. Check expiry, prior verification and status
        4. Record the verification (the repository advances the status once
           both addresses are verified)
        5. Notify admins or the owner depending on the new status

        Args:
            token: Plain verification token from the emailed link
            email_type: "current" or "new"
            ip_address: Optional client IP for the audit trail
            user_agent: Optional client user agent for the audit trail
            correlation_id: Optional correlation ID for request tracking

        Returns:
            VerifyResult with the updated request and the next step.

        Raises:
            EmailChangeError: INVALID_REQUEST_DATA, INVALID_VERIFICATION_TOKEN,
                VERIFICATION_TOKEN_EXPIRED or EMAIL_ALREADY_VERIFIED.
        """
        validation = validate_verify_request({"token": token, "email_type": email_type})
        if not validation.is_valid:
            self._raise_invalid(validation.errors, correlation_id=correlation_id)

        side = EmailType(email_type)
        if not VerificationToken.is_valid_format(token):
            logger.warning(
                "Malformed email change verification token",
                token_prefix=token_prefix(token),
                correlation_id=correlation_id,
            )
            raise EmailChangeError(
                EmailChangeErrorCode.INVALID_VERIFICATION_TOKEN,
                "Invalid verification token format",
                status_code=400,
            )

        request = await self._repository.get_by_token(token, side)
        if request is None:
            logger.warning(
                "Unknown email change verification token",
                token_prefix=token_prefix(token),
                email_type=side.value,
                correlation_id=correlation_id,
            )
            raise EmailChangeError(EmailChangeErrorCode.INVALID_VERIFICATION_TOKEN)

        if is_token_expired(request.verification_tokens_expires_at, self._clock()):
            logger.info("Email change verification token expired", request_id=request.id, correlation_id=correlation_id)
            raise EmailChangeError(EmailChangeErrorCode.VERIFICATION_TOKEN_EXPIRED)

        if request.is_verified(side):
            raise EmailChangeError(EmailChangeErrorCode.EMAIL_ALREADY_VERIFIED)

        if request.status is not RequestStatus.PENDING_VERIFICATION:
            raise EmailChangeError(
                EmailChangeErrorCode.INVALID_REQUEST_DATA,
                f"Request is not pending verification (status: {request.status.value})",
            )

        updated = await self._repository.update_verification_status(
            request.id, side, ip_address=ip_address, user_agent=user_agent
        )
        next_step = await self._follow_up(updated, correlation_id)

        logger.info(
            "Email change address verified",
            request_id=updated.id,
            email_type=side.value,
            status=updated.status.value,
            next_step=next_step.value,
            correlation_id=correlation_id,
        )
        return VerifyResult(
            request=updated,
            email_type=side,
            next_step=next_step,
            message=_MESSAGES[next_step].format(other=side.other.value),
        )

    async def _follow_up(self, request: EmailChangeRequest, correlation_id: Optional[str]) -> VerificationNextStep:
        if request.status is RequestStatus.PENDING_VERIFICATION:
            return VerificationNextStep.VERIFY_OTHER_EMAIL

        user_name = await self._display_name(request.user_id) or request.current_email
        if request.status is RequestStatus.PENDING_APPROVAL:
            await self._notify(
                "admin_approval_required",
                self._notifications.send_admin_approval_required(request, user_name),
                request_id=request.id,
                correlation_id=correlation_id,
            )
            return VerificationNextStep.PENDING_APPROVAL

        await self._notify(
            "approved",
            self._notifications.send_approval_notification(request, user_name),
            request_id=request.id,
            correlation_id=correlation_id,
        )
        return VerificationNextStep.AUTO_APPROVED
