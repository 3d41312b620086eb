import secrets
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlmodel import Column, Field, SQLModel

TOKEN_BYTES = 32


def generate_token_value() -> str:
    """Return an opaque, URL-safe reset token value (64 hex characters)."""
    return secrets.token_hex(TOKEN_BYTES)


class Token(SQLModel, table=True):
    """A password reset credential.

    The value carries no meaning of its own: it is only valid while a row with
    the same ``(user_id, token)`` pair exists. ``user_id`` is UNIQUE so that
    concurrent reset requests for one user cannot leave two retrievable tokens.
    Rows are removed when the owning user is deleted.
    """

    __tablename__ = "tokens"
    __table_args__ = {"extend_existing": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("users.id", ondelete="CASCADE"),
            unique=True,
            index=True,
            nullable=False,
        ),
    )
    token: str = Field(
        default_factory=generate_token_value,
        sa_column=Column(String(64), unique=True, nullable=False),
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )

    def __repr__(self) -> str:
        return f"Token(id={self.id!r}, user_id={self.user_id!r}, token='{self.token[:8]}...')"
