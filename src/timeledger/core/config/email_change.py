"""
Settings for the email-change request workflow.
"""
from typing import List, Optional, Union

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class EmailChangeSettings(BaseSettings):
    """
    Tunables of the email-change lifecycle.

    Attributes:
        VERIFICATION_TOKEN_EXPIRY_HOURS: Lifetime of both verification tokens.
        REQUEST_COOLDOWN_HOURS: Minimum time between two requests of a user.
        RESEND_LIMIT_PER_HOUR: Verification resends allowed per request per hour.
        VERIFY_RATE_LIMIT: slowapi limit applied per client IP to the public
            verification endpoint.
        RATE_LIMIT_ENABLED: Turns the slowapi limiter off (tests, local runs).
        ADMIN_EMAILS: Recipients of "approval required" notifications.
        AUTO_APPROVAL_REASONS: Reasons eligible for auto-approval when the
            email domain is unchanged.
        IDENTITY_PROVIDER: ``cognito`` or ``disabled``.
    """
    VERIFICATION_TOKEN_EXPIRY_HOURS: int = Field(default=24, ge=1, le=168)
    REQUEST_COOLDOWN_HOURS: int = Field(default=24, ge=0)
    RESEND_LIMIT_PER_HOUR: int = Field(default=3, ge=1)
    VERIFY_RATE_LIMIT: str = "10/minute"
    RATE_LIMIT_ENABLED: bool = True

    ADMIN_EMAILS: Union[str, List[str]] = Field(default_factory=list)
    AUTO_APPROVAL_REASONS: Union[str, List[str]] = Field(
        default_factory=lambda: ["personal_preference", "name_change"]
    )

    IDENTITY_PROVIDER: str = Field(default="disabled", pattern="^(cognito|disabled)$")
    COGNITO_USER_POOL_ID: Optional[str] = None
    COGNITO_REGION: str = "us-east-1"

    @field_validator("ADMIN_EMAILS", "AUTO_APPROVAL_REASONS", mode="before")
    @classmethod
    def split_csv(cls, v: Union[str, List[str]]) -> List[str]:
        if isinstance(v, str):
            return [i.strip() for i in v.split(",") if i.strip()]
        return v
