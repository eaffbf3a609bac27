"""Request-context helpers shared by the email-change routes."""

import uuid
from dataclasses import dataclass
from typing import Any

import structlog
from fastapi import Request

from timeledger.core.logging import mask_ip_address

logger = structlog.get_logger(__name__)

# Width of the user_agent columns of the request and audit tables.
MAX_USER_AGENT_LENGTH = 512


@dataclass(frozen=True)
class RequestContext:
    correlation_id: str
    client_ip: str
    user_agent: str
    logger: Any


def request_context(request: Request, endpoint: str) -> RequestContext:
    """Capture client IP, user agent and a correlation ID, and bind a logger to them."""
    correlation_id = request.headers.get("x-correlation-id") or str(uuid.uuid4())
    client_ip = request.client.host if request.client else "unknown"
    user_agent = request.headers.get("user-agent", "unknown")[:MAX_USER_AGENT_LENGTH]
    request_logger = logger.bind(
        correlation_id=correlation_id,
        client_ip=mask_ip_address(client_ip),
        endpoint=endpoint,
    )
    return RequestContext(
        correlation_id=correlation_id,
        client_ip=client_ip,
        user_agent=user_agent,
        logger=request_logger,
    )
