"""Public verification endpoints.

Verification links are opened from a mailbox, so these routes take no
bearer token; possession of the token is the credential. Both are limited
per client IP.
"""

from pathlib import Path

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from timeledger.adapters.api.v1.email_change.schemas import (
    VerifyEmailChangeRequest,
    VerifyEmailChangeResponse,
)
from timeledger.adapters.api.v1.email_change.utils import request_context
from timeledger.core.config.settings import settings
from timeledger.core.exceptions import EmailChangeError
from timeledger.core.logging import token_prefix
from timeledger.core.ratelimiter import get_limiter
from timeledger.domain.services.email_change import VerifyEmailChangeService, VerifyResult
from timeledger.infrastructure.dependency_injection.email_change_dependencies import get_verify_service

router = APIRouter()
limiter = get_limiter()

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parents[5] / "templates" / "pages"))


def _verify_response(result: VerifyResult) -> VerifyEmailChangeResponse:
    return VerifyEmailChangeResponse(
        request_id=result.request.id,
        email_type=result.email_type.value,
        status=result.request.status.value,
        next_step=result.next_step.value,
        message=result.message,
        current_email_verified=result.request.current_email_verified,
        new_email_verified=result.request.new_email_verified,
    )


@router.post(
    "/verify",
    response_model=VerifyEmailChangeResponse,
    summary="Verify one address of an email change request",
)
@limiter.limit(settings.VERIFY_RATE_LIMIT)
async def verify_email_change(
    request: Request,
    payload: VerifyEmailChangeRequest,
    service: VerifyEmailChangeService = Depends(get_verify_service),
):
    ctx = request_context(request, "verify_email_change")
    ctx.logger.info(
        "Email change verification attempt",
        token_prefix=token_prefix(payload.token),
        email_type=payload.email_type,
    )
    result = await service.verify(
        payload.token,
        payload.email_type,
        ip_address=ctx.client_ip,
        user_agent=ctx.user_agent,
        correlation_id=ctx.correlation_id,
    )
    return _verify_response(result)


@router.get(
    "/verify",
    response_class=HTMLResponse,
    summary="Verification landing page for emailed links",
)
@limiter.limit(settings.VERIFY_RATE_LIMIT)
async def verify_email_change_page(
    request: Request,
    token: str = Query(default=""),
    email_type: str = Query(default="", alias="type"),
    service: VerifyEmailChangeService = Depends(get_verify_service),
):
    ctx = request_context(request, "verify_email_change_page")
    context = {
        "app_name": settings.PROJECT_NAME,
        "frontend_url": settings.FRONTEND_URL,
        "next_step": None,
        "error_code": None,
    }
    try:
        result = await service.verify(
            token,
            email_type,
            ip_address=ctx.client_ip,
            user_agent=ctx.user_agent,
            correlation_id=ctx.correlation_id,
        )
    except EmailChangeError as e:
        ctx.logger.info("Verification page rejected token", error_code=e.error_code.value)
        context.update(success=False, title="Verification failed", message=e.message, error_code=e.error_code.value)
        return templates.TemplateResponse(request, "email_change_verify.html", context, status_code=e.status_code)

    context.update(
        success=True,
        title="Email verified",
        message=result.message,
        next_step=result.next_step.value,
        other_email_type=result.email_type.other.value,
    )
    return templates.TemplateResponse(request, "email_change_verify.html", context)
