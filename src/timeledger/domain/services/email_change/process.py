"""Process Email Change Service.

Applies an approved request: the identity provider learns the new address
first, then the profile store, and only then is the request completed. A
failure in either store leaves the request approved so it can be retried.
"""

from datetime import datetime
from typing import Callable, Optional

import structlog

from timeledger.core.exceptions import (
    DatabaseError,
    EmailChangeError,
    EmailChangeErrorCode,
    IdentityProviderError,
    IdentityUserNotFoundError,
)
from timeledger.core.logging import mask_email
from timeledger.domain.entities.email_change_request import EmailChangeRequest, RequestStatus
from timeledger.domain.entities.principal import Principal
from timeledger.domain.interfaces.repositories import IEmailChangeRepository, IUserRepository
from timeledger.domain.interfaces.services import IEmailChangeNotificationService, IIdentityProvider
from timeledger.domain.services.email_change.base import EmailChangeServiceBase, utcnow
from timeledger.domain.services.email_change.results import ProcessResult

logger = structlog.get_logger(__name__)


class ProcessEmailChangeService(EmailChangeServiceBase):
    """Service that carries out approved email changes.

    Args:
        identity_provider: External directory holding the login email;
            ``None`` when no provider is configured, in which case only the
            profile store is updated.
    """

    def __init__(
        self,
        email_change_repository: IEmailChangeRepository,
        user_repository: IUserRepository,
        notification_service: IEmailChangeNotificationService,
        identity_provider: Optional[IIdentityProvider] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        super().__init__(email_change_repository, user_repository, notification_service, clock)
        self._identity_provider = identity_provider
        logger.info("ProcessEmailChangeService initialized", identity_provider_enabled=identity_provider is not None)

    async def process(
        self,
        principal: Principal,
        request_id: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ) -> ProcessResult:
        """Apply an approved request to every store of the user's email.

        Workflow:
        1. Check the caller is an admin and the request is approved
        2. Update the identity provider (email and email_verified)
        3. Update the profile store
        4. Mark the request completed
        5. Tell the user at the new address (best effort)

        Raises:
            EmailChangeError: INSUFFICIENT_APPROVAL_PERMISSIONS,
                EMAIL_CHANGE_REQUEST_NOT_FOUND, REQUEST_NOT_APPROVED,
                USER_NOT_FOUND, EMAIL_ALREADY_EXISTS or EMAIL_PROCESSING_FAILED.
        """
        if not principal.is_admin:
            logger.warning(
                "Non-admin attempted to process email change",
                actor_id=principal.user_id,
                request_id=request_id,
                correlation_id=correlation_id,
            )
            raise EmailChangeError(EmailChangeErrorCode.INSUFFICIENT_APPROVAL_PERMISSIONS)

        request = await self._get_request(request_id)
        if request.status is not RequestStatus.APPROVED:
            raise EmailChangeError(
                EmailChangeErrorCode.REQUEST_NOT_APPROVED,
                f"Request must be approved before processing (status: {request.status.value})",
            )

        user = await self._user_repository.get_by_id(request.user_id)
        if user is None:
            raise EmailChangeError(EmailChangeErrorCode.USER_NOT_FOUND)

        logger.info(
            "Processing approved email change",
            request_id=request.id,
            user_id=request.user_id,
            current_email=mask_email(request.current_email),
            new_email=mask_email(request.new_email),
            correlation_id=correlation_id,
        )

        await self._update_identity_provider(request, correlation_id)
        try:
            await self._user_repository.update_email(request.user_id, request.new_email)
        except DatabaseError as e:
            logger.error(
                "Profile email update failed",
                request_id=request.id,
                error=str(e),
                correlation_id=correlation_id,
            )
            raise EmailChangeError(
                EmailChangeErrorCode.EMAIL_PROCESSING_FAILED, "Failed to update user profile"
            ) from e

        completed = await self._repository.complete(
            request.id,
            performed_by=principal.user_id,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        await self._notify(
            "completed",
            self._notifications.send_completion_notification(completed, user.display_name),
            request_id=completed.id,
            correlation_id=correlation_id,
        )

        logger.info(
            "Email change completed",
            request_id=completed.id,
            processed_by=principal.user_id,
            correlation_id=correlation_id,
        )
        return ProcessResult(
            request=completed,
            processed_by=principal.user_id,
            previous_email=completed.current_email,
            new_email=completed.new_email,
        )

    async def _update_identity_provider(self, request: EmailChangeRequest, correlation_id: Optional[str]) -> None:
        if self._identity_provider is None:
            logger.info(
                "Identity provider disabled, skipping directory update",
                request_id=request.id,
                correlation_id=correlation_id,
            )
            return

        try:
            if await self._identity_provider_already_updated(request):
                logger.info(
                    "Identity provider already holds the new email, skipping update",
                    request_id=request.id,
                    correlation_id=correlation_id,
                )
                return
            await self._identity_provider.update_user_attributes(
                request.current_email,
                {"email": request.new_email, "email_verified": True},
            )
        except IdentityUserNotFoundError as e:
            raise EmailChangeError(
                EmailChangeErrorCode.USER_NOT_FOUND, "User not found in identity provider"
            ) from e
        except IdentityProviderError as e:
            logger.error(
                "Identity provider update failed",
                request_id=request.id,
                error=str(e),
                correlation_id=correlation_id,
            )
            raise EmailChangeError(
                EmailChangeErrorCode.EMAIL_PROCESSING_FAILED, "Failed to update identity provider"
            ) from e

    async def _identity_provider_already_updated(self, request: EmailChangeRequest) -> bool:
        """Whether an earlier attempt already moved the provider to the new email.

        Raises:
            IdentityUserNotFoundError: Neither address is known to the provider.
        """
        try:
            await self._identity_provider.get_user(request.current_email)
            return False
        except IdentityUserNotFoundError:
            user = await self._identity_provider.get_user(request.new_email)

        attributes = user.get("attributes", {})
        verified = str(attributes.get("email_verified", "")).lower() == "true"
        if attributes.get("email", "").lower() == request.new_email and verified:
            return True
        raise IdentityUserNotFoundError()
