"""Email configuration settings for the user service.

This module defines the parameters used to deliver confirmation and password
reset emails, and the base URI from which reset links are built.
"""

from typing import Optional

from pydantic import EmailStr, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class EmailSettings(BaseSettings):
    """Email configuration settings with secure defaults.

    Security considerations:
    - SMTP credentials are handled as SecretStr to prevent logging
    - TLS is enabled by default

    Attributes:
        EMAIL_SMTP_HOST: SMTP server hostname
        EMAIL_SMTP_PORT: SMTP server port (587 for STARTTLS, 465 for SSL)
        EMAIL_SMTP_USERNAME: SMTP authentication username
        EMAIL_SMTP_PASSWORD: SMTP authentication password (SecretStr)
        EMAIL_SMTP_USE_TLS: Enable STARTTLS
        EMAIL_SMTP_USE_SSL: Enable implicit SSL (alternative to STARTTLS)
        EMAIL_FROM_EMAIL: Sender address
        EMAIL_FROM_NAME: Sender display name
        EMAIL_TEST_MODE: Render and log emails instead of sending them
        EMAIL_TEMPLATES_DIR: Directory containing Jinja2 email templates
        EMAIL_PASSWORD_RESET_URI: Base URI of password reset links
    """

    model_config = SettingsConfigDict(case_sensitive=True, extra="ignore")

    EMAIL_SMTP_HOST: str = Field(default="localhost", description="SMTP server hostname")
    EMAIL_SMTP_PORT: int = Field(default=587, ge=1, le=65535, description="SMTP server port")
    EMAIL_SMTP_USERNAME: Optional[str] = Field(default=None, description="SMTP username")
    EMAIL_SMTP_PASSWORD: Optional[SecretStr] = Field(default=None, description="SMTP password")
    EMAIL_SMTP_USE_TLS: bool = Field(default=True, description="Enable STARTTLS")
    EMAIL_SMTP_USE_SSL: bool = Field(default=False, description="Enable implicit SSL")

    EMAIL_FROM_EMAIL: EmailStr = Field(default="noreply@example.com", description="Sender address")
    EMAIL_FROM_NAME: str = Field(default="User Service", description="Sender display name")

    EMAIL_TEST_MODE: bool = Field(default=False, description="Log emails instead of sending")
    EMAIL_TEMPLATES_DIR: Optional[str] = Field(
        default=None,
        description="Template directory; defaults to the packaged templates",
    )
    EMAIL_PASSWORD_RESET_URI: str = Field(
        default="http://localhost:3000/reset-password",
        description="Base URI for password reset links",
    )

    def validate_smtp_config(self) -> None:
        """Validate that SMTP delivery is possible.

        Raises:
            ValueError: If credentials are missing or TLS and SSL are both set.
        """
        if self.EMAIL_TEST_MODE:
            return
        if self.EMAIL_SMTP_USE_TLS and self.EMAIL_SMTP_USE_SSL:
            raise ValueError("EMAIL_SMTP_USE_TLS and EMAIL_SMTP_USE_SSL are mutually exclusive")
        if not self.EMAIL_SMTP_USERNAME or not self.EMAIL_SMTP_PASSWORD:
            raise ValueError("EMAIL_SMTP_USERNAME and EMAIL_SMTP_PASSWORD are required")
