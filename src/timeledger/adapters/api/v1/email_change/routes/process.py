"""Processing endpoint: applies an approved change to the user's account."""

from fastapi import APIRouter, Depends, Request

from timeledger.adapters.api.v1.email_change.schemas import EmailChangeRequestOut, ProcessEmailChangeResponse
from timeledger.adapters.api.v1.email_change.utils import request_context
from timeledger.core.dependencies.auth import CurrentPrincipal
from timeledger.core.logging import mask_email
from timeledger.domain.services.email_change import ProcessEmailChangeService
from timeledger.infrastructure.dependency_injection.email_change_dependencies import get_process_service

router = APIRouter()


@router.post(
    "/requests/{request_id}/process",
    response_model=ProcessEmailChangeResponse,
    summary="Apply an approved email change",
    description=(
        "Updates the identity provider and the user profile, then completes the request. "
        "If either update fails the request stays approved and can be processed again."
    ),
)
async def process_email_change(
    request: Request,
    request_id: str,
    principal: CurrentPrincipal,
    service: ProcessEmailChangeService = Depends(get_process_service),
):
    ctx = request_context(request, "process_email_change")
    ctx.logger.info("Email change processing requested", request_id=request_id, actor_id=principal.user_id)
    result = await service.process(
        principal,
        request_id,
        ip_address=ctx.client_ip,
        user_agent=ctx.user_agent,
        correlation_id=ctx.correlation_id,
    )
    ctx.logger.info(
        "Email change processed",
        request_id=request_id,
        new_email=mask_email(result.new_email),
    )
    return ProcessEmailChangeResponse(
        request=EmailChangeRequestOut.from_entity(result.request),
        processed_by=result.processed_by,
        previous_email=result.previous_email,
        new_email=result.new_email,
    )
