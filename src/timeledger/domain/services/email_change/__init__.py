"""Email change lifecycle services."""

from .approve import ApproveEmailChangeService
from .cancel import CancelEmailChangeService
from .process import ProcessEmailChangeService
from .queries import GetEmailChangeService, ListEmailChangeService
from .reject import RejectEmailChangeService
from .resend import ResendVerificationService
from .results import (
    ApproveResult,
    CancelResult,
    ListedRequest,
    ListResult,
    ProcessResult,
    RejectResult,
    RequestDetails,
    ResendResult,
    SubmitResult,
    VerificationNextStep,
    VerifyResult,
)
from .submit import SubmitEmailChangeService
from .verify import VerifyEmailChangeService

__all__ = [
    "ApproveEmailChangeService",
    "CancelEmailChangeService",
    "GetEmailChangeService",
    "ListEmailChangeService",
    "ProcessEmailChangeService",
    "RejectEmailChangeService",
    "ResendVerificationService",
    "SubmitEmailChangeService",
    "VerifyEmailChangeService",
    "ApproveResult",
    "CancelResult",
    "ListedRequest",
    "ListResult",
    "ProcessResult",
    "RejectResult",
    "RequestDetails",
    "ResendResult",
    "SubmitResult",
    "VerificationNextStep",
    "VerifyResult",
]
