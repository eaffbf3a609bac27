"""Notification emails of the email-change lifecycle.

Each method composes a template name and its data and hands them to the
injected `IEmailSender`. Sending failures surface as `EmailServiceError`;
the calling service decides whether the operation still succeeds.
"""

from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import urlencode

import structlog

from timeledger.core.exceptions import EmailServiceError
from timeledger.core.logging import mask_email
from timeledger.domain.entities.email_change_request import EmailChangeRequest, EmailType
from timeledger.domain.interfaces.services import IEmailChangeNotificationService, IEmailSender

logger = structlog.get_logger(__name__)

VERIFICATION_TEMPLATE = "email_change_verification"
APPROVAL_REQUIRED_TEMPLATE = "email_change_approval_required"
APPROVED_TEMPLATE = "email_change_approved"
REJECTED_TEMPLATE = "email_change_rejected"
COMPLETED_TEMPLATE = "email_change_completed"


class EmailChangeNotificationService(IEmailChangeNotificationService):
    """Sends the five lifecycle notifications of an email-change request.

    Args:
        email_sender: Template delivery capability.
        frontend_url: Base URL of the web client used in action links.
        admin_emails: Recipients of "approval required" notifications.
        token_expiry_hours: Shown to the user next to the verification link.
    """

    def __init__(
        self,
        email_sender: IEmailSender,
        frontend_url: str,
        admin_emails: Sequence[str] = (),
        token_expiry_hours: int = 24,
    ):
        self._sender = email_sender
        self._frontend_url = frontend_url.rstrip("/")
        self._admin_emails = list(admin_emails)
        self._token_expiry_hours = token_expiry_hours

    def _base_data(self, request: EmailChangeRequest, user_name: str) -> Dict[str, Any]:
        return {
            "user_name": user_name,
            "request_id": request.id,
            "current_email": request.current_email,
            "new_email": request.new_email,
            "reason": request.reason.label,
            "custom_reason": request.custom_reason,
            "requested_at": request.requested_at,
        }

    def verification_url(self, token: str, email_type: EmailType) -> str:
        return f"{self._frontend_url}/verify-email?{urlencode({'token': token, 'type': email_type.value})}"

    async def send_verification_email(
        self, request: EmailChangeRequest, email_type: EmailType, token: str, user_name: str
    ) -> None:
        data = self._base_data(request, user_name)
        data.update(
            subject="Verify your email change request",
            email_type=email_type.value,
            is_current_email=email_type is EmailType.CURRENT,
            verification_url=self.verification_url(token, email_type),
            expires_in=f"{self._token_expiry_hours} hours",
            expires_at=request.verification_tokens_expires_at,
        )
        await self._sender.send_templated(VERIFICATION_TEMPLATE, request.email_for(email_type), data)
        logger.info(
            "Email change verification sent",
            request_id=request.id,
            email_type=email_type.value,
            to_email=mask_email(request.email_for(email_type)),
        )

    async def send_admin_approval_required(self, request: EmailChangeRequest, user_name: str) -> None:
        if not self._admin_emails:
            logger.warning("No admin recipients configured for approval notifications", request_id=request.id)
            return

        data = self._base_data(request, user_name)
        data.update(
            subject="Email change request requires approval",
            is_domain_change=request.is_domain_change,
            verified_at=request.verified_at,
            approval_url=f"{self._frontend_url}/admin/email-change-requests/{request.id}",
        )
        failed: List[str] = []
        for admin_email in self._admin_emails:
            try:
                await self._sender.send_templated(APPROVAL_REQUIRED_TEMPLATE, admin_email, data)
            except EmailServiceError as e:
                logger.error(
                    "Admin approval notification failed",
                    request_id=request.id,
                    to_email=mask_email(admin_email),
                    error=str(e),
                )
                failed.append(admin_email)
        if failed:
            raise EmailServiceError(f"Approval notification failed for {len(failed)} admin recipient(s)")

    async def send_approval_notification(
        self, request: EmailChangeRequest, user_name: str, approver_name: Optional[str] = None
    ) -> None:
        data = self._base_data(request, user_name)
        data.update(
            subject="Your email change request has been approved",
            approved_by=approver_name,
            approved_at=request.approved_at,
            auto_approved=approver_name is None,
            estimated_completion_time=request.estimated_completion_time,
        )
        await self._sender.send_templated(APPROVED_TEMPLATE, request.current_email, data)

    async def send_rejection_notification(
        self, request: EmailChangeRequest, user_name: str, rejecter_name: Optional[str] = None
    ) -> None:
        data = self._base_data(request, user_name)
        data.update(
            subject="Your email change request has been rejected",
            rejected_by=rejecter_name,
            rejected_at=request.rejected_at,
            rejection_reason=request.rejection_reason,
        )
        await self._sender.send_templated(REJECTED_TEMPLATE, request.current_email, data)

    async def send_completion_notification(self, request: EmailChangeRequest, user_name: str) -> None:
        data = self._base_data(request, user_name)
        data.update(
            subject="Your email address has been changed",
            completed_at=request.completed_at,
            login_url=f"{self._frontend_url}/login",
        )
        await self._sender.send_templated(COMPLETED_TEMPLATE, request.new_email, data)
