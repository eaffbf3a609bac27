"""Submit Email Change Service.

Opens a new email-change request: validates the payload and the stateful
business rules, persists the request with two fresh verification tokens and
emails one link to each address.
"""

from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Optional

import structlog

from timeledger.core.exceptions import EmailChangeError, EmailChangeErrorCode
from timeledger.core.logging import mask_email
from timeledger.domain.entities.email_change_request import ChangeReason, EmailType, RequestStatus
from timeledger.domain.entities.principal import Principal
from timeledger.domain.interfaces.repositories import IEmailChangeRepository, IUserRepository
from timeledger.domain.interfaces.services import IEmailChangeNotificationService
from timeledger.domain.services.email_change.base import EmailChangeServiceBase, utcnow
from timeledger.domain.services.email_change.results import SubmitResult
from timeledger.domain.validation.email_change_validation import (
    DEFAULT_COOLDOWN_HOURS,
    validate_business_rules,
    validate_create_request,
)

logger = structlog.get_logger(__name__)

APPROVAL_ETA_HOURS = 48
SELF_SERVICE_ETA_HOURS = 24


class SubmitEmailChangeService(EmailChangeServiceBase):
    """Service for submitting email change requests.

    A member submits for themselves; an admin may also submit on behalf of
    another user, in which case the admin is recorded as the requester.
    """

    def __init__(
        self,
        email_change_repository: IEmailChangeRepository,
        user_repository: IUserRepository,
        notification_service: IEmailChangeNotificationService,
        cooldown_hours: int = DEFAULT_COOLDOWN_HOURS,
        auto_approval_reasons: Optional[Iterable[ChangeReason]] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize with required dependencies.

        Args:
            email_change_repository: Request persistence
            user_repository: Profile lookups (current email, ownership of the new one)
            notification_service: Sends the two verification emails
            cooldown_hours: Minimum gap after a completed request before the same
                user may submit again
            auto_approval_reasons: Reasons that skip admin approval on same-domain changes
            clock: Source of the current time
        """
        super().__init__(email_change_repository, user_repository, notification_service, clock)
        self._cooldown_hours = cooldown_hours
        self._auto_approval_reasons = (
            frozenset(auto_approval_reasons) if auto_approval_reasons is not None else None
        )

        logger.info("SubmitEmailChangeService initialized")

    async def submit(
        self,
        principal: Principal,
        new_email: str,
        reason: str,
        custom_reason: Optional[str] = None,
        target_user_id: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ) -> SubmitResult:
        """Submit a request to change the email address of a user.

        Workflow:
        1. Resolve the target user (self, or another user for admins)
        2. Validate the payload
        3. Reject addresses owned by another account
        4. Apply the business rules (same email, active request, cooldown)
        5. Persist the request with two verification tokens
        6. Email one verification link to each address (best effort)

        Args:
            principal: Authenticated caller
            new_email: Requested new address
            reason: One of the `ChangeReason` values
            custom_reason: Free text, required when reason is "other"
            target_user_id: User whose email changes; defaults to the caller
            ip_address: Optional client IP for the audit trail
            user_agent: Optional client user agent for the audit trail
            correlation_id: Optional correlation ID for request tracking

        Returns:
            SubmitResult with the stored request, whether approval will be
            required, the estimated completion time and the next steps.

        Raises:
            EmailChangeError: FORBIDDEN, INVALID_REQUEST_DATA, USER_NOT_FOUND,
                EMAIL_ALREADY_EXISTS, SAME_AS_CURRENT_EMAIL,
                ACTIVE_REQUEST_EXISTS or COOLDOWN_ACTIVE.
        """
        user_id = target_user_id or principal.user_id
        if user_id != principal.user_id and not principal.is_admin:
            logger.warning(
                "Non-admin tried to submit an email change for another user",
                actor_id=principal.user_id,
                target_user_id=user_id,
                correlation_id=correlation_id,
            )
            raise EmailChangeError(
                EmailChangeErrorCode.FORBIDDEN,
                "Only administrators can request email changes for other users",
            )

        validation = validate_create_request(
            {"new_email": new_email, "reason": reason, "custom_reason": custom_reason}
        )
        if not validation.is_valid:
            self._raise_invalid(validation.errors, user_id=user_id, correlation_id=correlation_id)

        new_email = new_email.strip().lower()
        change_reason = ChangeReason(reason)

        user = await self._user_repository.get_by_id(user_id)
        if user is None:
            raise EmailChangeError(EmailChangeErrorCode.USER_NOT_FOUND)

        logger.info(
            "Processing email change request",
            user_id=user_id,
            current_email=mask_email(user.email),
            new_email=mask_email(new_email),
            reason=change_reason.value,
            correlation_id=correlation_id,
        )

        owner = await self._user_repository.get_by_email(new_email)
        if owner is not None and owner.id != user_id:
            logger.info(
                "Requested email belongs to another account",
                user_id=user_id,
                new_email=mask_email(new_email),
                correlation_id=correlation_id,
            )
            raise EmailChangeError(EmailChangeErrorCode.EMAIL_ALREADY_EXISTS)

        now = self._clock()
        has_active = await self._repository.has_active_request(user_id)
        latest = None
        if self._cooldown_hours > 0:
            # Only completed requests start the cooldown.
            latest = await self._repository.get_latest_request(user_id, statuses=(RequestStatus.COMPLETED,))
        rules = validate_business_rules(
            user.email,
            new_email,
            has_active,
            last_request_at=latest.requested_at if latest else None,
            now=now,
            cooldown_hours=self._cooldown_hours,
        )
        if not rules.is_valid:
            code = EmailChangeErrorCode(rules.first_error)
            logger.info(
                "Email change request rejected by business rules",
                user_id=user_id,
                error_code=code.value,
                correlation_id=correlation_id,
            )
            raise EmailChangeError(code)

        request = await self._repository.create_request(
            user_id=user_id,
            current_email=user.email,
            new_email=new_email,
            reason=change_reason,
            custom_reason=custom_reason if change_reason is ChangeReason.OTHER else None,
            ip_address=ip_address,
            user_agent=user_agent,
            requested_by=principal.user_id,
        )

        for email_type in (EmailType.CURRENT, EmailType.NEW):
            await self._notify(
                "verification",
                self._notifications.send_verification_email(
                    request, email_type, request.issued_token(email_type), user.display_name
                ),
                request_id=request.id,
                email_type=email_type.value,
                correlation_id=correlation_id,
            )

        requires_approval = request.requires_admin_approval(self._auto_approval_reasons)
        eta_hours = APPROVAL_ETA_HOURS if requires_approval else SELF_SERVICE_ETA_HOURS

        logger.info(
            "Email change request submitted",
            request_id=request.id,
            user_id=user_id,
            requires_approval=requires_approval,
            correlation_id=correlation_id,
        )
        return SubmitResult(
            request=request,
            requires_approval=requires_approval,
            estimated_completion_time=now + timedelta(hours=eta_hours),
            next_steps=self._next_steps(request.current_email, request.new_email, requires_approval),
        )

    @staticmethod
    def _next_steps(current_email: str, new_email: str, requires_approval: bool) -> List[str]:
        steps = [
            f"Check your current email ({current_email}) for verification link",
            f"Check your new email ({new_email}) for verification link",
        ]
        if requires_approval:
            steps.append("Admin approval will be required after verification")
        return steps
