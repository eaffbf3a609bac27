"""List and detail queries over email change requests."""

from typing import Dict, Optional

import structlog

from timeledger.core.exceptions import EmailChangeError, EmailChangeErrorCode
from timeledger.domain.entities.email_change_request import RequestStatus
from timeledger.domain.entities.principal import Principal
from timeledger.domain.entities.user import User
from timeledger.domain.services.email_change.base import EmailChangeServiceBase
from timeledger.domain.services.email_change.results import ListedRequest, ListResult, RequestDetails
from timeledger.domain.validation.email_change_validation import DEFAULT_LIST_LIMIT, validate_list_filters
from timeledger.domain.value_objects.email_change_filters import EmailChangeListFilters

logger = structlog.get_logger(__name__)


class ListEmailChangeService(EmailChangeServiceBase):
    """Paginated listing.

    Members only ever see their own requests. Admins may list everyone's;
    an unscoped admin listing is enriched with each owner's name and
    current profile email.
    """

    async def list_requests(
        self,
        principal: Principal,
        user_id: Optional[str] = None,
        status: Optional[str] = None,
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
        include_completed: bool = False,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
    ) -> ListResult:
        validation = validate_list_filters(
            {"limit": limit, "status": status, "sort_by": sort_by, "sort_order": sort_order}
        )
        if not validation.is_valid:
            self._raise_invalid(validation.errors, actor_id=principal.user_id)

        if not principal.is_admin:
            if user_id and user_id != principal.user_id:
                raise EmailChangeError(
                    EmailChangeErrorCode.FORBIDDEN, "You can only list your own email change requests"
                )
            user_id = principal.user_id

        filters = EmailChangeListFilters(
            user_id=user_id,
            status=RequestStatus(status) if status else None,
            limit=limit or DEFAULT_LIST_LIMIT,
            cursor=cursor,
            include_completed=include_completed,
            sort_by=sort_by or "requested_at",
            sort_order=sort_order or "desc",
        )
        page = await self._repository.list_requests(filters)

        if user_id is not None:
            items = [ListedRequest(request=request) for request in page.items]
        else:
            owners: Dict[str, Optional[User]] = {}
            for request in page.items:
                if request.user_id not in owners:
                    owners[request.user_id] = await self._user_repository.get_by_id(request.user_id)
            items = [
                ListedRequest(
                    request=request,
                    user_name=owners[request.user_id].display_name if owners[request.user_id] else None,
                    user_current_email=owners[request.user_id].email if owners[request.user_id] else None,
                )
                for request in page.items
            ]

        logger.debug(
            "Email change requests listed",
            actor_id=principal.user_id,
            scoped_user_id=user_id,
            count=len(items),
            has_more=page.has_more,
        )
        return ListResult(items=items, next_cursor=page.next_cursor)


class GetEmailChangeService(EmailChangeServiceBase):
    """Single request with its audit trail."""

    async def get_request(self, principal: Principal, request_id: str) -> RequestDetails:
        request = await self._get_request(request_id)
        self._ensure_owner_or_admin(principal, request)
        return RequestDetails(request=request, audit_log=await self._repository.get_audit_log(request.id))
