"""Cancellation endpoint."""

from fastapi import APIRouter, Depends, Request

from timeledger.adapters.api.v1.email_change.schemas import CancelEmailChangeResponse, EmailChangeRequestOut
from timeledger.adapters.api.v1.email_change.utils import request_context
from timeledger.core.dependencies.auth import CurrentPrincipal
from timeledger.domain.services.email_change import CancelEmailChangeService
from timeledger.infrastructure.dependency_injection.email_change_dependencies import get_cancel_service

router = APIRouter()


@router.post(
    "/requests/{request_id}/cancel",
    response_model=CancelEmailChangeResponse,
    summary="Cancel an email change request",
)
async def cancel_email_change(
    request: Request,
    request_id: str,
    principal: CurrentPrincipal,
    service: CancelEmailChangeService = Depends(get_cancel_service),
):
    ctx = request_context(request, "cancel_email_change")
    result = await service.cancel(
        principal,
        request_id,
        ip_address=ctx.client_ip,
        user_agent=ctx.user_agent,
        correlation_id=ctx.correlation_id,
    )
    return CancelEmailChangeResponse(
        request=EmailChangeRequestOut.from_entity(result.request),
        cancelled_by=result.cancelled_by,
        cancelled_by_name=result.cancelled_by_name,
    )
