"""Domain interfaces for dependency inversion.

Infrastructure adapters implement these contracts; domain services depend
only on them.
"""

from .repositories import IEmailChangeRepository, IUserRepository
from .services import IEmailChangeNotificationService, IEmailSender, IIdentityProvider

__all__ = [
    "IEmailChangeNotificationService",
    "IEmailChangeRepository",
    "IEmailSender",
    "IIdentityProvider",
    "IUserRepository",
]
