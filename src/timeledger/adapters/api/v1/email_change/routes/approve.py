"""Admin approval endpoint."""

from typing import Optional

from fastapi import APIRouter, Depends, Request

from timeledger.adapters.api.v1.email_change.schemas import (
    ApproveEmailChangeRequest,
    ApproveEmailChangeResponse,
    EmailChangeRequestOut,
)
from timeledger.adapters.api.v1.email_change.utils import request_context
from timeledger.core.dependencies.auth import CurrentPrincipal
from timeledger.domain.services.email_change import ApproveEmailChangeService
from timeledger.infrastructure.dependency_injection.email_change_dependencies import get_approve_service

router = APIRouter()


@router.post(
    "/requests/{request_id}/approve",
    response_model=ApproveEmailChangeResponse,
    summary="Approve a verified email change request",
)
async def approve_email_change(
    request: Request,
    request_id: str,
    principal: CurrentPrincipal,
    payload: Optional[ApproveEmailChangeRequest] = None,
    service: ApproveEmailChangeService = Depends(get_approve_service),
):
    ctx = request_context(request, "approve_email_change")
    ctx.logger.info("Email change approval requested", request_id=request_id, actor_id=principal.user_id)
    result = await service.approve(
        principal,
        request_id,
        approval_notes=payload.approval_notes if payload else None,
        ip_address=ctx.client_ip,
        user_agent=ctx.user_agent,
        correlation_id=ctx.correlation_id,
    )
    return ApproveEmailChangeResponse(
        request=EmailChangeRequestOut.from_entity(result.request),
        approved_by_id=result.approved_by_id,
        approved_by_name=result.approved_by_name,
        estimated_completion_time=result.estimated_completion_time,
    )
