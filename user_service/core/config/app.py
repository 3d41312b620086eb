"""
Application-wide settings.
"""
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings


class AppSettings(BaseSettings):
    """
    Defines application-wide settings like project name, environment and logging.

    Performance Note:
        - LOG_JSON should stay enabled in production so log shippers can parse
          structured events without regex scraping.
    """
    PROJECT_NAME: str = "user-service"

    APP_ENV: str = Field(default="development", pattern="^(development|test|staging|production)$")

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    DEFAULT_LANGUAGE: str = "en"
    SUPPORTED_LANGUAGES: List[str] = ["en", "es"]
