from __future__ import annotations

"""
Global exception handlers for the FastAPI application.

This module contains centralized handlers for custom application exceptions,
translating them into appropriate HTTP responses. Every error body has the
same shape: ``{"error_code": ..., "message": ..., "details": ...}``.
"""

from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette import status
from structlog import get_logger

from timeledger.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DatabaseError,
    EmailChangeError,
    EmailChangeErrorCode,
    TimeLedgerError,
)

__all__ = [
    "error_body",
    "email_change_error_handler",
    "authentication_error_handler",
    "authorization_error_handler",
    "database_error_handler",
    "rate_limit_exception_handler",
    "request_validation_error_handler",
    "timeledger_error_handler",
    "register_exception_handlers",
]

logger = get_logger(__name__)


def error_body(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {"error_code": code, "message": message, "details": details}


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def email_change_error_handler(request: Request, exc: EmailChangeError) -> JSONResponse:
    """Handles `EmailChangeError`, answering with the status bound to its code.

    Args:
        request: The incoming `Request` object.
        exc: The `EmailChangeError` instance.

    Returns:
        A `JSONResponse` with the error's status code, code and message.
    """
    log = logger.warning if exc.status_code >= 500 else logger.info
    log(
        "Email change request failed",
        error_code=exc.error_code.value,
        status_code=exc.status_code,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.error_code.value, exc.message, exc.details),
    )


async def authentication_error_handler(request: Request, exc: AuthenticationError) -> JSONResponse:
    """Handles `AuthenticationError`, returning a `401 Unauthorized`."""
    logger.warning(
        "Authentication failure",
        error=exc.code,
        client_ip=_client_ip(request),
        path=request.url.path,
    )
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content=error_body(exc.code, exc.message),
        headers={"WWW-Authenticate": "Bearer"},
    )


async def authorization_error_handler(request: Request, exc: AuthorizationError) -> JSONResponse:
    """Handles `AuthorizationError`, returning a `403 Forbidden`."""
    return JSONResponse(
        status_code=status.HTTP_403_FORBIDDEN,
        content=error_body(exc.code, exc.message),
    )


async def database_error_handler(request: Request, exc: DatabaseError) -> JSONResponse:
    """Handles `DatabaseError`, returning a `500 Internal Server Error`.

    The underlying message is logged but never returned to the client.
    """
    logger.error("Database error", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("INTERNAL_ERROR", "An internal error occurred"),
    )


async def rate_limit_exception_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Handles slowapi's `RateLimitExceeded`, returning a `429 Too Many Requests`."""
    logger.warning(
        "Rate limit exceeded",
        client_ip=_client_ip(request),
        path=request.url.path,
        limit=str(exc.detail),
    )
    code = EmailChangeErrorCode.VERIFICATION_RATE_LIMITED
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=error_body(code.value, EmailChangeError(code).message),
    )


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handles malformed payloads, returning a `400` with INVALID_REQUEST_DATA."""
    errors = [
        f"{'.'.join(str(part) for part in error['loc'] if part != 'body')}: {error['msg']}"
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(
            EmailChangeErrorCode.INVALID_REQUEST_DATA.value,
            errors[0] if errors else "Invalid request data",
            {"errors": errors},
        ),
    )


async def timeledger_error_handler(request: Request, exc: TimeLedgerError) -> JSONResponse:
    """Fallback for `TimeLedgerError` subclasses without a dedicated handler."""
    logger.error("Unhandled application error", error=exc.code, path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(exc.code, exc.message),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application.

    Args:
        app (FastAPI): The FastAPI application instance
    """
    app.add_exception_handler(EmailChangeError, email_change_error_handler)
    app.add_exception_handler(AuthenticationError, authentication_error_handler)
    app.add_exception_handler(AuthorizationError, authorization_error_handler)
    app.add_exception_handler(DatabaseError, database_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(TimeLedgerError, timeledger_error_handler)
