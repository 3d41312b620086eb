from datetime import datetime, timezone  # For timestamp fields
from typing import Optional  # For optional fields

from sqlalchemy import DateTime, String  # For explicit column types
from sqlmodel import Column, Field, SQLModel  # For ORM and table definition


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    """Represents the identity record owned by the user service.

    Email and username are each unique among users; the UNIQUE constraints on
    the table are the real guarantee, the service-level existence checks only
    reject early. ``is_email_verified`` starts False and flips to True exactly
    once, when the confirmation code is consumed.

    Attributes:
        id: Storage-assigned identifier (primary key).
        email: Unique email address.
        username: Unique username.
        password_hash: Bcrypt hash of the password; never the plaintext.
        is_email_verified: Whether the confirmation code has been consumed.
        confirmation_code: Signed code bound to the email address.
        created_at: When the account was created.
        updated_at: When the record last changed.
    """

    __tablename__ = "users"
    __table_args__ = {"extend_existing": True}

    id: Optional[int] = Field(
        default=None,  # Auto-incremented by database
        primary_key=True,
        description="The unique identifier for the user.",
    )
    email: str = Field(
        sa_column=Column(String(254), unique=True, index=True, nullable=False),
        description="Unique email address.",
    )
    username: str = Field(
        sa_column=Column(String(30), unique=True, index=True, nullable=False),
        description="Unique username.",
    )
    password_hash: str = Field(
        max_length=255,  # Sufficient for bcrypt hashes
        description="Bcrypt hash of the user's password.",
    )
    is_email_verified: bool = Field(
        default=False,
        description="Indicates if the user's email has been confirmed.",
    )
    confirmation_code: Optional[str] = Field(
        default=None,
        sa_column=Column(String(512), unique=True, index=True, nullable=True),
        description="Signed email confirmation code.",
    )
    created_at: datetime = Field(
        default_factory=_utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
        description="The timestamp of when the user account was created.",
    )
    updated_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True),
        description="The timestamp of the last update to the user's record.",
    )

    def __repr__(self) -> str:
        return (
            f"User(id={self.id!r}, username={self.username!r}, "
            f"is_email_verified={self.is_email_verified!r})"
        )
