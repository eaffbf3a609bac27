"""Repository interfaces for abstracting data persistence in the domain layer.

These abstract base classes are the "ports" the email-change services talk to.
Concrete adapters live in `timeledger.infrastructure.repositories`.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, List, Optional

from timeledger.domain.entities.email_change_audit_log import EmailChangeAuditLog
from timeledger.domain.entities.email_change_request import ChangeReason, EmailChangeRequest, EmailType, RequestStatus
from timeledger.domain.entities.user import User
from timeledger.domain.value_objects.email_change_filters import EmailChangeListFilters, EmailChangeRequestPage


class IUserRepository(ABC):
    """Contract of the user profile store."""

    @abstractmethod
    async def get_by_id(self, user_id: str) -> Optional[User]:
        """Retrieves a user by their unique identifier.

        Returns:
            An optional `User` entity. Returns `None` if no user is found.
        """
        raise NotImplementedError

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[User]:
        """Retrieves a user by their email address (case-insensitively)."""
        raise NotImplementedError

    @abstractmethod
    async def update_email(self, user_id: str, email: str) -> User:
        """Replace the profile email of a user.

        Raises:
            EmailChangeError: USER_NOT_FOUND if the user does not exist.
        """
        raise NotImplementedError


class IEmailChangeRepository(ABC):
    """Persistence of email-change requests and their audit trail.

    Every mutating operation except `regenerate_tokens` appends exactly one
    audit entry (two on auto-approval); `regenerate_tokens` appends a
    `verification_resent` entry. Transitions are conditional on the expected
    source status, so a stale caller gets a state-conflict error instead of
    moving a request backwards.
    """

    @abstractmethod
    async def create_request(
        self,
        user_id: str,
        current_email: str,
        new_email: str,
        reason: ChangeReason,
        custom_reason: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        requested_by: Optional[str] = None,
    ) -> EmailChangeRequest:
        """Create a `pending_verification` request with two fresh tokens.

        `requested_by` is the acting principal when an admin submits on
        behalf of `user_id`; it defaults to the owner.

        The returned instance exposes both plain tokens through
        `EmailChangeRequest.issued_token`.

        Raises:
            EmailChangeError: ACTIVE_REQUEST_EXISTS if the user already holds
                an active request.
        """
        raise NotImplementedError

    @abstractmethod
    async def get_by_id(self, request_id: str) -> Optional[EmailChangeRequest]:
        raise NotImplementedError

    @abstractmethod
    async def get_by_token(self, token: str, email_type: EmailType) -> Optional[EmailChangeRequest]:
        """Resolve the request whose latest token for `email_type` is `token`."""
        raise NotImplementedError

    @abstractmethod
    async def has_active_request(self, user_id: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def get_latest_request(
        self, user_id: str, statuses: Optional[Iterable[RequestStatus]] = None
    ) -> Optional[EmailChangeRequest]:
        """Most recently submitted request of the user, optionally limited to `statuses`."""
        raise NotImplementedError

    @abstractmethod
    async def update_verification_status(
        self,
        request_id: str,
        email_type: EmailType,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> EmailChangeRequest:
        """Mark one side verified; advance the status once both are."""
        raise NotImplementedError

    @abstractmethod
    async def approve(
        self,
        request_id: str,
        approved_by: str,
        notes: Optional[str] = None,
        estimated_completion_time: Optional[datetime] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> EmailChangeRequest:
        raise NotImplementedError

    @abstractmethod
    async def reject(
        self,
        request_id: str,
        rejected_by: str,
        reason: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> EmailChangeRequest:
        raise NotImplementedError

    @abstractmethod
    async def cancel(
        self,
        request_id: str,
        cancelled_by: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> EmailChangeRequest:
        raise NotImplementedError

    @abstractmethod
    async def complete(
        self,
        request_id: str,
        performed_by: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> EmailChangeRequest:
        raise NotImplementedError

    @abstractmethod
    async def regenerate_tokens(
        self,
        request_id: str,
        email_type: EmailType,
        performed_by: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> EmailChangeRequest:
        """Issue a fresh token for one side and restart the shared expiry."""
        raise NotImplementedError

    @abstractmethod
    async def list_requests(self, filters: EmailChangeListFilters) -> EmailChangeRequestPage:
        raise NotImplementedError

    @abstractmethod
    async def get_audit_log(self, request_id: str) -> List[EmailChangeAuditLog]:
        """Audit entries of a request in chronological order."""
        raise NotImplementedError

    @abstractmethod
    async def count_recent_resends(self, request_id: str, since: datetime) -> int:
        raise NotImplementedError
