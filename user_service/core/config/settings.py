"""Main application settings and configuration management.

This module composes the settings from the different modules (app, auth,
email, database) into a single ``Settings`` class and exposes a ``settings``
singleton for use throughout the package.

Environment Support:
- Development / Test: email test mode is enabled, the default confirmation
  secret is tolerated with a warning
- Staging / Production: the confirmation secret must be configured
"""

import logging
import os
from pathlib import Path

from pydantic_settings import SettingsConfigDict

from .app import AppSettings
from .auth import AuthSettings
from .database import DatabaseSettings
from .email import EmailSettings

logger = logging.getLogger(__name__)
logging.getLogger("passlib").setLevel(logging.ERROR)


class Settings(AppSettings, AuthSettings, EmailSettings, DatabaseSettings):
    """The settings class that aggregates every configuration group.

    Values are immutable after construction as far as the identity core is
    concerned: services copy what they need in their constructors.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="ignore"
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._set_environment_defaults(self.APP_ENV)

    def _set_environment_defaults(self, env: str) -> None:
        """Set environment-specific defaults.

        Args:
            env: Environment name
        """
        if env in ("development", "test"):
            self.EMAIL_TEST_MODE = True
        logger.info("Application running in %s environment (email test mode: %s)", env, self.EMAIL_TEST_MODE)

    def validate_required_fields(self) -> None:
        """Validate configuration that must be explicit outside development.

        Raises:
            ValueError: If the confirmation secret is left at its default in
                staging or production.
        """
        if self.uses_default_confirmation_secret():
            if self.APP_ENV in ("development", "test"):
                logger.warning("CONFIRMATION_SECRET is not set; using the development default")
            else:
                error_msg = "Missing required environment variable: CONFIRMATION_SECRET"
                logger.error(error_msg)
                raise ValueError(error_msg)

        try:
            self.validate_smtp_config()
        except ValueError as e:
            # Delivery errors surface per message; configuration problems are only reported.
            logger.error("Email configuration error: %s", e)


def create_settings() -> Settings:
    """Create a settings instance using the env file that matches ``APP_ENV``.

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

    if Path(env_file).exists():
        logger.info("Loading environment configuration from %s", env_file)
        return Settings(_env_file=env_file)
    logger.info("No %s file found, using environment variables only", env_file)
    return Settings()


settings = create_settings()
settings.validate_required_fields()
