"""Shared plumbing of the email-change services."""

from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, Sequence

import structlog

from timeledger.core.exceptions import EmailChangeError, EmailChangeErrorCode, EmailServiceError
from timeledger.domain.entities.email_change_request import EmailChangeRequest
from timeledger.domain.entities.principal import Principal
from timeledger.domain.interfaces.repositories import IEmailChangeRepository, IUserRepository
from timeledger.domain.interfaces.services import IEmailChangeNotificationService

logger = structlog.get_logger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EmailChangeServiceBase:
    """Collaborators and helpers common to every lifecycle operation.

    Args:
        email_change_repository: Request and audit persistence.
        user_repository: Profile store, used for names and email ownership.
        notification_service: Lifecycle emails.
        clock: Source of the current time.
    """

    def __init__(
        self,
        email_change_repository: IEmailChangeRepository,
        user_repository: IUserRepository,
        notification_service: IEmailChangeNotificationService,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._repository = email_change_repository
        self._user_repository = user_repository
        self._notifications = notification_service
        self._clock = clock

    async def _get_request(self, request_id: str) -> EmailChangeRequest:
        request = await self._repository.get_by_id(request_id)
        if request is None:
            logger.info("Email change request not found", request_id=request_id)
            raise EmailChangeError(EmailChangeErrorCode.EMAIL_CHANGE_REQUEST_NOT_FOUND)
        return request

    async def _display_name(self, user_id: Optional[str]) -> Optional[str]:
        if not user_id:
            return None
        user = await self._user_repository.get_by_id(user_id)
        return user.display_name if user is not None else None

    @staticmethod
    def _ensure_owner_or_admin(principal: Principal, request: EmailChangeRequest) -> None:
        if principal.is_admin or principal.user_id == request.user_id:
            return
        logger.warning(
            "Email change access denied",
            request_id=request.id,
            actor_id=principal.user_id,
            owner_id=request.user_id,
        )
        raise EmailChangeError(EmailChangeErrorCode.FORBIDDEN)

    async def _notify(self, event: str, send: Awaitable[None], **context) -> bool:
        """Await a best-effort notification; delivery failures are logged only."""
        try:
            await send
        except EmailServiceError as e:
            logger.warning("Email change notification failed", notification=event, error=str(e), **context)
            return False
        return True

    @staticmethod
    def _raise_invalid(errors: Sequence[str], **context) -> None:
        logger.info("Email change request data invalid", errors=list(errors), **context)
        raise EmailChangeError(
            EmailChangeErrorCode.INVALID_REQUEST_DATA,
            errors[0],
            details={"errors": list(errors)},
        )
