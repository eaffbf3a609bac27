"""Infrastructure services: outbound email and the external identity provider."""

from .email_change_notification_service import EmailChangeNotificationService
from .email_sender import SmtpEmailSender
from .identity_provider import CognitoIdentityProvider

__all__ = ["CognitoIdentityProvider", "EmailChangeNotificationService", "SmtpEmailSender"]
