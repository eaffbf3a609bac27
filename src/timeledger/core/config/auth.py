"""
Authentication settings for bearer-token validation.
"""
from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings


class AuthSettings(BaseSettings):
    """
    Settings used to decode the JWTs issued by the identity service.

    The email-change service never issues tokens itself; it only validates
    the signature and reads the subject and role claims.

    Security Note:
        - JWT_SECRET_KEY must never be logged or exposed.
        - Set JWT_ISSUER and JWT_AUDIENCE in production so that tokens minted
          for other services are rejected.
    """
    JWT_SECRET_KEY: SecretStr = Field(default=SecretStr("change-me-change-me-change-me-32"))
    JWT_ALGORITHM: str = Field(default="HS256", pattern="^(HS256|HS384|HS512|RS256)$")
    JWT_ISSUER: Optional[str] = None
    JWT_AUDIENCE: Optional[str] = None
    JWT_ROLE_CLAIM: str = "role"
