"""Interfaces of the outbound capabilities used by the email-change services."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional

from timeledger.domain.entities.email_change_request import EmailChangeRequest, EmailType


class IEmailSender(ABC):
    """Template-based email delivery."""

    @abstractmethod
    async def send_templated(self, template_name: str, to_address: str, data: Mapping[str, Any]) -> None:
        """Render `template_name` with `data` and deliver it to `to_address`.

        Raises:
            EmailServiceError: Rendering or delivery failed.
        """
        raise NotImplementedError


class IIdentityProvider(ABC):
    """External credential store holding the login email of each user."""

    @abstractmethod
    async def get_user(self, username: str) -> Dict[str, Any]:
        """Return the provider's view of a user.

        Raises:
            IdentityUserNotFoundError: No such user.
            IdentityProviderError: Any other provider failure.
        """
        raise NotImplementedError

    @abstractmethod
    async def update_user_attributes(self, username: str, attributes: Mapping[str, Any]) -> None:
        """Raises IdentityProviderError on failure."""
        raise NotImplementedError


class IEmailChangeNotificationService(ABC):
    """Lifecycle notifications of email-change requests.

    Every method raises `EmailServiceError` when the message cannot be sent;
    callers decide whether that aborts the operation.
    """

    @abstractmethod
    async def send_verification_email(
        self, request: EmailChangeRequest, email_type: EmailType, token: str, user_name: str
    ) -> None:
        raise NotImplementedError

    @abstractmethod
    async def send_admin_approval_required(self, request: EmailChangeRequest, user_name: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def send_approval_notification(
        self, request: EmailChangeRequest, user_name: str, approver_name: Optional[str] = None
    ) -> None:
        raise NotImplementedError

    @abstractmethod
    async def send_rejection_notification(
        self, request: EmailChangeRequest, user_name: str, rejecter_name: Optional[str] = None
    ) -> None:
        raise NotImplementedError

    @abstractmethod
    async def send_completion_notification(self, request: EmailChangeRequest, user_name: str) -> None:
        raise NotImplementedError
