"""Main application settings and configuration management.

This module composes all the application settings from the different modules
(app, database, auth, email, email_change) into a single, accessible `Settings`
class.

It loads settings from environment variables and .env files, validates them,
and provides a single `settings` object for use throughout the application.

Environment Support:
- Development: Uses .env, SMTP credentials not required, email test mode enabled
- Test: Uses .env.test, SMTP credentials not required, email test mode enabled
- Staging: Uses .env.staging, SMTP credentials required
- Production: Uses .env.production, SMTP credentials required
"""

import logging
import os
from pathlib import Path

from pydantic_settings import SettingsConfigDict

from .app import AppSettings
from .auth import AuthSettings
from .database import DatabaseSettings
from .email import EmailSettings
from .email_change import EmailChangeSettings

logger = logging.getLogger(__name__)


class Settings(AppSettings, DatabaseSettings, AuthSettings, EmailSettings, EmailChangeSettings):
    """The main settings class that aggregates all application configurations.

    Environment Support:
        - Automatically loads the correct .env file based on APP_ENV
        - Development/Test: SMTP credentials not required, test mode enabled
        - Staging/Production: SMTP credentials required, production mode

    Usage:
        - Access settings via the singleton instance `settings` throughout the application.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="ignore"
    )

    def __init__(self, **kwargs):
        """Initialize settings with environment-specific configuration."""
        super().__init__(**kwargs)
        self._set_environment_defaults(self.APP_ENV)

    def _set_environment_defaults(self, env: str) -> None:
        """Set environment-specific default values.

        Args:
            env: Environment name
        """
        if env in ("development", "test"):
            self.EMAIL_TEST_MODE = True

        if env == "development":
            self.DEBUG = True

        logger.info("Application running in %s environment (email test mode: %s)", env, self.EMAIL_TEST_MODE)

    def validate_required_fields(self) -> None:
        """Validates the settings that must be explicit outside development.

        Raises:
            ValueError: If a required production setting is missing.
        """
        if self.APP_ENV in ("production", "staging"):
            missing = []
            if self.IDENTITY_PROVIDER == "cognito" and not self.COGNITO_USER_POOL_ID:
                missing.append("COGNITO_USER_POOL_ID")
            if not self.ADMIN_EMAILS:
                missing.append("ADMIN_EMAILS")
            if missing:
                error_msg = f"Missing required environment variables: {', '.join(missing)}"
                logger.error(error_msg)
                raise ValueError(error_msg)

        try:
            self.validate_smtp_config()
        except ValueError as e:
            # Email degrades gracefully; notifications are best-effort
            logger.error("Email configuration error: %s", e)


def create_settings() -> Settings:
    """Create settings instance with environment-specific configuration.

    Returns:
        Settings: Configured settings instance
    """
    env = os.getenv("APP_ENV", "development")

    env_files = {
        "development": ".env",
        "test": ".env.test",
        "staging": ".env.staging",
        "production": ".env.production",
    }
    env_file = env_files.get(env, ".env")

    if env != "development" and Path(env_file).exists():
        logger.info("Loading environment configuration from %s", env_file)
        return Settings(_env_file=env_file)
    if Path(".env").exists():
        logger.info("Loading environment configuration from .env (environment: %s)", env)
    else:
        logger.warning("No .env file found, using environment variables only (environment: %s)", env)
    return Settings()


# Singleton used across the application.
settings = create_settings()
settings.validate_required_fields()
