"""Submission, listing and detail endpoints of email change requests.

The API layer is kept thin: it captures the security context, hands the
payload to a domain service and shapes the result. All rules live in the
services.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status

from timeledger.adapters.api.v1.email_change.schemas import (
    EmailChangeRequestDetailResponse,
    EmailChangeRequestListResponse,
    EmailChangeRequestOut,
    AuditLogEntryOut,
    SubmitEmailChangeRequest,
    SubmitEmailChangeResponse,
)
from timeledger.adapters.api.v1.email_change.utils import request_context
from timeledger.core.dependencies.auth import CurrentAdmin, CurrentPrincipal
from timeledger.core.logging import mask_email
from timeledger.domain.entities.principal import Principal
from timeledger.domain.services.email_change import (
    GetEmailChangeService,
    ListEmailChangeService,
    SubmitEmailChangeService,
    SubmitResult,
)
from timeledger.infrastructure.dependency_injection.email_change_dependencies import (
    get_detail_service,
    get_list_service,
    get_submit_service,
)

router = APIRouter()


def _submit_response(result: SubmitResult) -> SubmitEmailChangeResponse:
    return SubmitEmailChangeResponse(
        request=EmailChangeRequestOut.from_entity(result.request),
        requires_approval=result.requires_approval,
        estimated_completion_time=result.estimated_completion_time,
        verification_required=result.verification_required,
        next_steps=result.next_steps,
    )


async def _submit(
    request: Request,
    principal: Principal,
    payload: SubmitEmailChangeRequest,
    service: SubmitEmailChangeService,
    target_user_id: Optional[str],
) -> SubmitEmailChangeResponse:
    ctx = request_context(request, "submit_email_change")
    ctx.logger.info(
        "Email change submission received",
        actor_id=principal.user_id,
        target_user_id=target_user_id or principal.user_id,
        new_email=mask_email(payload.new_email),
    )
    result = await service.submit(
        principal,
        new_email=payload.new_email,
        reason=payload.reason,
        custom_reason=payload.custom_reason,
        target_user_id=target_user_id,
        ip_address=ctx.client_ip,
        user_agent=ctx.user_agent,
        correlation_id=ctx.correlation_id,
    )
    return _submit_response(result)


@router.post(
    "/requests",
    response_model=SubmitEmailChangeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit an email change request",
    description=(
        "Opens a request to change the caller's email address. A verification link "
        "is sent to both the current and the new address."
    ),
)
async def submit_email_change(
    request: Request,
    payload: SubmitEmailChangeRequest,
    principal: CurrentPrincipal,
    service: SubmitEmailChangeService = Depends(get_submit_service),
):
    return await _submit(request, principal, payload, service, target_user_id=None)


@router.post(
    "/users/{user_id}/requests",
    response_model=SubmitEmailChangeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit an email change request on behalf of a user",
)
async def submit_email_change_for_user(
    request: Request,
    user_id: str,
    payload: SubmitEmailChangeRequest,
    principal: CurrentAdmin,
    service: SubmitEmailChangeService = Depends(get_submit_service),
):
    return await _submit(request, principal, payload, service, target_user_id=user_id)


@router.get(
    "/requests",
    response_model=EmailChangeRequestListResponse,
    summary="List email change requests",
    description=(
        "Members see their own requests. Administrators see all requests, optionally "
        "filtered by user. Completed requests are hidden unless requested."
    ),
)
async def list_email_change_requests(
    principal: CurrentPrincipal,
    user_id: Optional[str] = Query(default=None),
    status_filter: Optional[str] = Query(default=None, alias="status"),
    limit: Optional[int] = Query(default=None),
    cursor: Optional[str] = Query(default=None),
    include_completed: bool = Query(default=False),
    sort_by: Optional[str] = Query(default=None),
    sort_order: Optional[str] = Query(default=None),
    service: ListEmailChangeService = Depends(get_list_service),
):
    result = await service.list_requests(
        principal,
        user_id=user_id,
        status=status_filter,
        limit=limit,
        cursor=cursor,
        include_completed=include_completed,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return EmailChangeRequestListResponse(
        items=[
            EmailChangeRequestOut.from_entity(item.request, item.user_name, item.user_current_email)
            for item in result.items
        ],
        next_cursor=result.next_cursor,
        has_more=result.has_more,
    )


@router.get(
    "/requests/{request_id}",
    response_model=EmailChangeRequestDetailResponse,
    summary="Get an email change request with its audit trail",
)
async def get_email_change_request(
    request_id: str,
    principal: CurrentPrincipal,
    service: GetEmailChangeService = Depends(get_detail_service),
):
    details = await service.get_request(principal, request_id)
    return EmailChangeRequestDetailResponse(
        request=EmailChangeRequestOut.from_entity(details.request),
        audit_log=[AuditLogEntryOut.from_entity(entry) for entry in details.audit_log],
    )
