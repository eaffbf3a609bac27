"""
Logging configuration module for structured logging.

This module configures the application's logging system using structlog.
It provides JSON output for production and human-readable console output
for development, plus helpers that keep personal data out of log lines.
"""

import logging
import sys
from typing import Optional

import structlog


def configure_logging(log_level: str = "INFO", json_logs: bool = False) -> None:
    """
    Configures the application's logging system.

    This function sets up structlog with:
    1. Context variables merged into every event (correlation ids)
    2. ISO format timestamps
    3. Log level inclusion
    4. JSON formatting for production (when LOG_JSON=True)
    5. Console formatting for development
    """
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level.upper())

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.add_log_level,
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer(),
    ]

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def mask_email(email: Optional[str]) -> str:
    """Mask an email address for logging (``abc***@domain``)."""
    if not email or "@" not in email:
        return "***"
    local, domain = email.rsplit("@", 1)
    return f"{local[:3]}***@{domain}"


def mask_ip_address(ip_address: Optional[str]) -> str:
    """Keep the network part of an IPv4 address, drop the host part."""
    if not ip_address:
        return "unknown"
    parts = ip_address.split(".")
    if len(parts) == 4:
        return ".".join(parts[:3] + ["***"])
    return ip_address.split(":")[0] + ":***"


def token_prefix(token: Optional[str]) -> str:
    return token[:8] if token else "none"


logger = structlog.get_logger()
