"""SMTP email delivery with Jinja2 templates.

Each template exists as ``<name>.html`` and ``<name>.txt``; both are rendered
with the same context and sent through FastMail as an HTML message with a
plain-text alternative. In test mode the message is rendered and logged but
not sent.
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Mapping, Optional

import structlog
from fastapi_mail import ConnectionConfig, FastMail, MessageSchema
from fastapi_mail.errors import ConnectionErrors
from fastapi_mail.schemas import MessageType, MultipartSubtypeEnum
from jinja2 import Environment, FileSystemLoader, TemplateError, TemplateNotFound, select_autoescape

from timeledger.core.config.settings import Settings
from timeledger.core.exceptions import EmailServiceError, TemplateRenderError
from timeledger.core.logging import mask_email
from timeledger.domain.interfaces.services import IEmailSender

logger = structlog.get_logger(__name__)

DEFAULT_TEMPLATES_DIR = Path(__file__).resolve().parents[2] / "templates" / "email"


def _format_datetime(value: Optional[datetime], format_string: str = "%Y-%m-%d %H:%M UTC") -> str:
    if value is None:
        return ""
    return value.strftime(format_string)


def build_connection_config(settings: Settings) -> ConnectionConfig:
    """Translate the SMTP settings into a FastMail connection config."""
    return ConnectionConfig(
        MAIL_USERNAME=settings.SMTP_USERNAME or "",
        MAIL_PASSWORD=settings.SMTP_PASSWORD.get_secret_value() if settings.SMTP_PASSWORD else "",
        MAIL_FROM=settings.FROM_EMAIL,
        MAIL_FROM_NAME=settings.FROM_NAME,
        MAIL_SERVER=settings.SMTP_HOST,
        MAIL_PORT=settings.SMTP_PORT,
        MAIL_STARTTLS=settings.SMTP_USE_TLS and not settings.SMTP_USE_SSL,
        MAIL_SSL_TLS=settings.SMTP_USE_SSL,
        USE_CREDENTIALS=bool(settings.SMTP_USERNAME and settings.SMTP_PASSWORD),
        VALIDATE_CERTS=True,
        TIMEOUT=int(settings.SMTP_TIMEOUT),
    )


class SmtpEmailSender(IEmailSender):
    """`IEmailSender` rendering Jinja2 templates and delivering them with FastMail."""

    def __init__(self, settings: Settings, templates_dir: Optional[Path] = None):
        self._settings = settings
        self._test_mode = settings.EMAIL_TEST_MODE
        template_dir = templates_dir or Path(settings.EMAIL_TEMPLATES_DIR or DEFAULT_TEMPLATES_DIR)
        self._jinja_env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self._jinja_env.filters["format_datetime"] = _format_datetime
        self._fastmail = None if self._test_mode else FastMail(build_connection_config(settings))
        logger.info(
            "SmtpEmailSender initialized",
            test_mode=self._test_mode,
            smtp_configured=bool(settings.SMTP_USERNAME),
        )

    def render(self, template_name: str, context: Mapping[str, Any]) -> tuple[str, str]:
        """Render the HTML and text bodies of a template.

        Raises:
            TemplateRenderError: If a template is missing or fails to render.
        """
        try:
            html_body = self._jinja_env.get_template(f"{template_name}.html").render(**context)
            text_body = self._jinja_env.get_template(f"{template_name}.txt").render(**context)
        except TemplateNotFound as e:
            logger.error("Template not found", template=template_name, error=str(e))
            raise TemplateRenderError(f"Template file not found: {template_name}") from e
        except TemplateError as e:
            logger.error("Template rendering failed", template=template_name, error=str(e))
            raise TemplateRenderError(f"Template rendering failed: {e}") from e
        return html_body, text_body

    async def send_templated(self, template_name: str, to_address: str, data: Mapping[str, Any]) -> None:
        context = {"app_name": self._settings.PROJECT_NAME, **data}
        subject = str(context.get("subject") or self._settings.PROJECT_NAME)
        html_body, text_body = self.render(template_name, context)

        if self._fastmail is None:
            logger.info(
                "Email (test mode)",
                template=template_name,
                to_email=mask_email(to_address),
                subject=subject,
            )
            return

        message = MessageSchema(
            subject=subject,
            recipients=[to_address],
            body=html_body,
            alternative_body=text_body,
            subtype=MessageType.html,
            multipart_subtype=MultipartSubtypeEnum.alternative,
        )
        try:
            await self._fastmail.send_message(message)
        except ConnectionErrors as e:
            logger.error(
                "Failed to send email",
                template=template_name,
                to_email=mask_email(to_address),
                error=str(e),
            )
            raise EmailServiceError(f"Failed to send {template_name} email") from e

        logger.info("Email sent", template=template_name, to_email=mask_email(to_address))
