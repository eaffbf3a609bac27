"""Admin rejection endpoint."""

from fastapi import APIRouter, Depends, Request

from timeledger.adapters.api.v1.email_change.schemas import (
    EmailChangeRequestOut,
    RejectEmailChangeRequest,
    RejectEmailChangeResponse,
)
from timeledger.adapters.api.v1.email_change.utils import request_context
from timeledger.core.dependencies.auth import CurrentPrincipal
from timeledger.domain.services.email_change import RejectEmailChangeService
from timeledger.infrastructure.dependency_injection.email_change_dependencies import get_reject_service

router = APIRouter()


@router.post(
    "/requests/{request_id}/reject",
    response_model=RejectEmailChangeResponse,
    summary="Reject a pending email change request",
)
async def reject_email_change(
    request: Request,
    request_id: str,
    payload: RejectEmailChangeRequest,
    principal: CurrentPrincipal,
    service: RejectEmailChangeService = Depends(get_reject_service),
):
    ctx = request_context(request, "reject_email_change")
    ctx.logger.info("Email change rejection requested", request_id=request_id, actor_id=principal.user_id)
    result = await service.reject(
        principal,
        request_id,
        payload.rejection_reason,
        ip_address=ctx.client_ip,
        user_agent=ctx.user_agent,
        correlation_id=ctx.correlation_id,
    )
    return RejectEmailChangeResponse(
        request=EmailChangeRequestOut.from_entity(result.request),
        rejected_by_id=result.rejected_by_id,
        rejected_by_name=result.rejected_by_name,
    )
