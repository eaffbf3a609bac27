"""Verification resend endpoint."""

from fastapi import APIRouter, Depends, Request

from timeledger.adapters.api.v1.email_change.schemas import (
    ResendVerificationRequest,
    ResendVerificationResponse,
)
from timeledger.adapters.api.v1.email_change.utils import request_context
from timeledger.core.dependencies.auth import CurrentPrincipal
from timeledger.domain.services.email_change import ResendVerificationService
from timeledger.infrastructure.dependency_injection.email_change_dependencies import get_resend_service

router = APIRouter()


@router.post(
    "/requests/{request_id}/resend",
    response_model=ResendVerificationResponse,
    summary="Resend the verification link of one address",
    description="Issues a fresh token for the chosen address; the previous link stops working.",
)
async def resend_verification(
    request: Request,
    request_id: str,
    payload: ResendVerificationRequest,
    principal: CurrentPrincipal,
    service: ResendVerificationService = Depends(get_resend_service),
):
    ctx = request_context(request, "resend_email_change_verification")
    ctx.logger.info(
        "Verification resend requested",
        request_id=request_id,
        actor_id=principal.user_id,
        email_type=payload.email_type,
    )
    result = await service.resend(
        principal,
        request_id,
        payload.email_type,
        ip_address=ctx.client_ip,
        user_agent=ctx.user_agent,
        correlation_id=ctx.correlation_id,
    )
    return ResendVerificationResponse(
        request_id=result.request_id,
        email_type=result.email_type.value,
        email_address=result.email_address,
        resent_at=result.resent_at,
        expires_at=result.expires_at,
    )
