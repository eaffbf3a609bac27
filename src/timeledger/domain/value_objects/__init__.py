from .email_change_filters import EmailChangeListFilters, EmailChangeRequestPage
from .verification_token import VerificationToken, hash_token, is_expired

__all__ = [
    "EmailChangeListFilters",
    "EmailChangeRequestPage",
    "VerificationToken",
    "hash_token",
    "is_expired",
]
