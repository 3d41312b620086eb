"""Credential and token settings.
"""

import logging

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

DEFAULT_CONFIRMATION_SECRET = "insecure-development-confirmation-secret"


class AuthSettings(BaseSettings):
    """Defines settings for password hashing and email-confirmation codes.

    Security Note:
        - CONFIRMATION_SECRET signs every confirmation code; rotating it
          invalidates every outstanding confirmation code.
        - BCRYPT_WORK_FACTOR is a cost exponent: each increment doubles hashing
          time. Values below 10 are only suitable for tests.
    """

    CONFIRMATION_SECRET: SecretStr = SecretStr(DEFAULT_CONFIRMATION_SECRET)
    CONFIRMATION_ALGORITHM: str = Field(default="HS256", pattern="^HS(256|384|512)$")

    BCRYPT_WORK_FACTOR: int = Field(default=12, ge=4, le=31)

    def uses_default_confirmation_secret(self) -> bool:
        """Return True when the signing secret was never configured."""
        return self.CONFIRMATION_SECRET.get_secret_value() == DEFAULT_CONFIRMATION_SECRET
