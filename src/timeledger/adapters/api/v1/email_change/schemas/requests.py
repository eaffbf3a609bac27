from __future__ import annotations

"""Request-payload Pydantic models for email-change endpoints.

Field constraints are left to the domain validators, which answer with
INVALID_REQUEST_DATA.
"""

from typing import Optional

from pydantic import BaseModel, Field


class SubmitEmailChangeRequest(BaseModel):
    """Payload expected by ``POST /email-change/requests``."""

    new_email: str = Field(..., examples=["jane.doe@example.com"])
    reason: str = Field(..., examples=["personal_preference"])
    custom_reason: Optional[str] = Field(default=None, examples=["Consolidating accounts"])


class VerifyEmailChangeRequest(BaseModel):
    """Payload expected by ``POST /email-change/verify``."""

    token: str = Field(..., description="Verification token from the emailed link")
    email_type: str = Field(..., examples=["current"])


class ResendVerificationRequest(BaseModel):
    """Payload expected by ``POST /email-change/requests/{id}/resend``."""

    email_type: str = Field(..., examples=["new"])


class ApproveEmailChangeRequest(BaseModel):
    """Payload expected by ``POST /email-change/requests/{id}/approve``."""

    approval_notes: Optional[str] = Field(default=None, examples=["Verified with HR"])


class RejectEmailChangeRequest(BaseModel):
    """Payload expected by ``POST /email-change/requests/{id}/reject``."""

    rejection_reason: str = Field(..., examples=["Domain is not owned by the organisation"])
