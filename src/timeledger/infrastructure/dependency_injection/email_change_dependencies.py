"""Dependency injection for the email-change services.

Infrastructure adapters are process-wide singletons (`lru_cache`): the
document store, the repositories, the SMTP sender and the identity provider
hold no per-request state. Domain services are built per request from them
so that tests can swap any single provider through
`app.dependency_overrides`.
"""

from functools import lru_cache
from typing import Optional

import structlog
from fastapi import Depends

from timeledger.core.config.settings import settings
from timeledger.domain.entities.email_change_request import ChangeReason
from timeledger.domain.interfaces.repositories import IEmailChangeRepository, IUserRepository
from timeledger.domain.interfaces.services import (
    IEmailChangeNotificationService,
    IEmailSender,
    IIdentityProvider,
)
from timeledger.domain.services.email_change import (
    ApproveEmailChangeService,
    CancelEmailChangeService,
    GetEmailChangeService,
    ListEmailChangeService,
    ProcessEmailChangeService,
    RejectEmailChangeService,
    ResendVerificationService,
    SubmitEmailChangeService,
    VerifyEmailChangeService,
)
from timeledger.infrastructure.database.async_db import AsyncSessionFactory
from timeledger.infrastructure.database.tables import (
    AUDIT_LOGS_COLLECTION,
    REQUESTS_COLLECTION,
    EmailChangeAuditLogRecord,
    EmailChangeRequestRecord,
)
from timeledger.infrastructure.repositories import EmailChangeRepository, UserRepository
from timeledger.infrastructure.services import (
    CognitoIdentityProvider,
    EmailChangeNotificationService,
    SmtpEmailSender,
)
from timeledger.infrastructure.storage import IDocumentStore, SqlDocumentStore

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Infrastructure Layer Dependencies
# ---------------------------------------------------------------------------


@lru_cache
def get_document_store() -> IDocumentStore:
    return SqlDocumentStore(
        AsyncSessionFactory,
        {
            REQUESTS_COLLECTION: EmailChangeRequestRecord,
            AUDIT_LOGS_COLLECTION: EmailChangeAuditLogRecord,
        },
    )


def get_email_change_repository(
    store: IDocumentStore = Depends(get_document_store),
) -> IEmailChangeRepository:
    """Request repository configured with the token lifetime and auto-approval reasons."""
    return EmailChangeRepository(
        store,
        token_expiry_hours=settings.VERIFICATION_TOKEN_EXPIRY_HOURS,
        auto_approval_reasons=[ChangeReason(reason) for reason in settings.AUTO_APPROVAL_REASONS],
    )


@lru_cache
def get_user_repository() -> IUserRepository:
    return UserRepository(AsyncSessionFactory)


@lru_cache
def get_email_sender() -> IEmailSender:
    return SmtpEmailSender(settings)


def get_notification_service(
    email_sender: IEmailSender = Depends(get_email_sender),
) -> IEmailChangeNotificationService:
    return EmailChangeNotificationService(
        email_sender,
        frontend_url=settings.FRONTEND_URL,
        admin_emails=settings.ADMIN_EMAILS,
        token_expiry_hours=settings.VERIFICATION_TOKEN_EXPIRY_HOURS,
    )


@lru_cache
def get_identity_provider() -> Optional[IIdentityProvider]:
    """Cognito adapter, or ``None`` when ``IDENTITY_PROVIDER=disabled``."""
    if settings.IDENTITY_PROVIDER != "cognito":
        logger.info("Identity provider disabled")
        return None
    return CognitoIdentityProvider(settings.COGNITO_USER_POOL_ID, settings.COGNITO_REGION)


# ---------------------------------------------------------------------------
# Domain Service Dependencies
# ---------------------------------------------------------------------------


def get_submit_service(
    repository: IEmailChangeRepository = Depends(get_email_change_repository),
    user_repository: IUserRepository = Depends(get_user_repository),
    notifications: IEmailChangeNotificationService = Depends(get_notification_service),
) -> SubmitEmailChangeService:
    return SubmitEmailChangeService(
        repository,
        user_repository,
        notifications,
        cooldown_hours=settings.REQUEST_COOLDOWN_HOURS,
        auto_approval_reasons=[ChangeReason(reason) for reason in settings.AUTO_APPROVAL_REASONS],
    )


def get_verify_service(
    repository: IEmailChangeRepository = Depends(get_email_change_repository),
    user_repository: IUserRepository = Depends(get_user_repository),
    notifications: IEmailChangeNotificationService = Depends(get_notification_service),
) -> VerifyEmailChangeService:
    return VerifyEmailChangeService(repository, user_repository, notifications)


def get_resend_service(
    repository: IEmailChangeRepository = Depends(get_email_change_repository),
    user_repository: IUserRepository = Depends(get_user_repository),
    notifications: IEmailChangeNotificationService = Depends(get_notification_service),
) -> ResendVerificationService:
    return ResendVerificationService(
        repository,
        user_repository,
        notifications,
        resend_limit_per_hour=settings.RESEND_LIMIT_PER_HOUR,
    )


def get_approve_service(
    repository: IEmailChangeRepository = Depends(get_email_change_repository),
    user_repository: IUserRepository = Depends(get_user_repository),
    notifications: IEmailChangeNotificationService = Depends(get_notification_service),
) -> ApproveEmailChangeService:
    return ApproveEmailChangeService(repository, user_repository, notifications)


def get_reject_service(
    repository: IEmailChangeRepository = Depends(get_email_change_repository),
    user_repository: IUserRepository = Depends(get_user_repository),
    notifications: IEmailChangeNotificationService = Depends(get_notification_service),
) -> RejectEmailChangeService:
    return RejectEmailChangeService(repository, user_repository, notifications)


def get_cancel_service(
    repository: IEmailChangeRepository = Depends(get_email_change_repository),
    user_repository: IUserRepository = Depends(get_user_repository),
    notifications: IEmailChangeNotificationService = Depends(get_notification_service),
) -> CancelEmailChangeService:
    return CancelEmailChangeService(repository, user_repository, notifications)


def get_process_service(
    repository: IEmailChangeRepository = Depends(get_email_change_repository),
    user_repository: IUserRepository = Depends(get_user_repository),
    notifications: IEmailChangeNotificationService = Depends(get_notification_service),
    identity_provider: Optional[IIdentityProvider] = Depends(get_identity_provider),
) -> ProcessEmailChangeService:
    return ProcessEmailChangeService(repository, user_repository, notifications, identity_provider)


def get_list_service(
    repository: IEmailChangeRepository = Depends(get_email_change_repository),
    user_repository: IUserRepository = Depends(get_user_repository),
    notifications: IEmailChangeNotificationService = Depends(get_notification_service),
) -> ListEmailChangeService:
    return ListEmailChangeService(repository, user_repository, notifications)


def get_detail_service(
    repository: IEmailChangeRepository = Depends(get_email_change_repository),
    user_repository: IUserRepository = Depends(get_user_repository),
    notifications: IEmailChangeNotificationService = Depends(get_notification_service),
) -> GetEmailChangeService:
    return GetEmailChangeService(repository, user_repository, notifications)
