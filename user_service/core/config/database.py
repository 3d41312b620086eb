"""
Database connection settings.
"""
from pydantic import Field
from pydantic_settings import BaseSettings


class DatabaseSettings(BaseSettings):
    """
    Defines settings for the reference SQLAlchemy repository adapter.

    Security Note:
        - DATABASE_URL may embed credentials; it must never be logged.
    Performance Note:
        - The async engine is created lazily, so importing the package does not
          open connections.
    """
    DATABASE_URL: str = Field(default="sqlite+aiosqlite:///./user_service.db")
    DATABASE_ECHO: bool = False
