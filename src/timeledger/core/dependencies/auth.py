from __future__ import annotations

from typing import Annotated, Optional

import structlog
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from timeledger.core.config.settings import settings
from timeledger.core.exceptions import AuthenticationError, AuthorizationError
from timeledger.domain.entities.principal import Principal
from timeledger.domain.entities.user import Role

__all__ = [
    "decode_principal",
    "get_current_principal",
    "get_current_admin",
    "CurrentPrincipal",
    "CurrentAdmin",
]

logger = structlog.get_logger(__name__)

_bearer = HTTPBearer(auto_error=False)


def decode_principal(token: str) -> Principal:
    """Validate a bearer JWT and return the caller it names.

    The subject claim is the user id; the role claim (``JWT_ROLE_CLAIM``)
    defaults to ``employee`` when absent.

    Raises:
        AuthenticationError: Bad signature, expired, wrong issuer/audience,
            missing subject or unknown role.
    """
    options = {"verify_aud": settings.JWT_AUDIENCE is not None}
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY.get_secret_value(),
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
            options=options,
        )
    except JWTError as exc:
        logger.info("Bearer token rejected", error=str(exc))
        raise AuthenticationError("Invalid or expired token") from exc

    subject = payload.get("sub")
    if not subject:
        raise AuthenticationError("Token has no subject")

    try:
        role = Role(payload.get(settings.JWT_ROLE_CLAIM, Role.EMPLOYEE.value))
    except ValueError as exc:
        raise AuthenticationError("Token carries an unknown role") from exc

    return Principal(user_id=str(subject), role=role)


async def get_current_principal(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(_bearer)],
) -> Principal:
    """Return the authenticated caller; no role check."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError()
    return decode_principal(credentials.credentials)


async def get_current_admin(
    principal: Annotated[Principal, Depends(get_current_principal)],
) -> Principal:
    """Ensure the authenticated caller has the *admin* role."""
    if not principal.is_admin:
        raise AuthorizationError("Administrator privileges required")
    return principal


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
CurrentAdmin = Annotated[Principal, Depends(get_current_admin)]
