from __future__ import annotations

"""Re-export request and response models for email-change endpoints."""

# flake8: noqa: F401 – re-export

from .requests import (
    ApproveEmailChangeRequest,
    RejectEmailChangeRequest,
    ResendVerificationRequest,
    SubmitEmailChangeRequest,
    VerifyEmailChangeRequest,
)
from .responses import (
    ApproveEmailChangeResponse,
    AuditLogEntryOut,
    CancelEmailChangeResponse,
    EmailChangeRequestDetailResponse,
    EmailChangeRequestListResponse,
    EmailChangeRequestOut,
    ProcessEmailChangeResponse,
    RejectEmailChangeResponse,
    ResendVerificationResponse,
    SubmitEmailChangeResponse,
    VerifyEmailChangeResponse,
)

__all__ = [
    "ApproveEmailChangeRequest",
    "RejectEmailChangeRequest",
    "ResendVerificationRequest",
    "SubmitEmailChangeRequest",
    "VerifyEmailChangeRequest",
    "ApproveEmailChangeResponse",
    "AuditLogEntryOut",
    "CancelEmailChangeResponse",
    "EmailChangeRequestDetailResponse",
    "EmailChangeRequestListResponse",
    "EmailChangeRequestOut",
    "ProcessEmailChangeResponse",
    "RejectEmailChangeResponse",
    "ResendVerificationResponse",
    "SubmitEmailChangeResponse",
    "VerifyEmailChangeResponse",
]
