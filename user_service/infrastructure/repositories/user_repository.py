"""User Repository implementation using SQLAlchemy.

This is the reference storage adapter behind ``IUserRepository``. The UNIQUE
constraints on ``users.email``, ``users.username`` and
``users.confirmation_code`` are what actually guarantee uniqueness; a write
that violates them raises ``IntegrityError``, which the identity service
reports as a repository failure.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from user_service.core.logging import mask_email, mask_token
from user_service.domain.entities.token import Token
from user_service.domain.entities.user import User
from user_service.domain.interfaces.repositories import IUserRepository

logger = get_logger(__name__)


class UserRepository(IUserRepository):
    """SQLAlchemy implementation of ``IUserRepository``.

    Every write commits its own transaction and rolls back on failure before
    re-raising, so one failed call never poisons the session for the next.
    """

    def __init__(self, db_session: AsyncSession):
        """Initialize repository with database session.

        Args:
            db_session: SQLAlchemy async session for database operations
        """
        self.db_session = db_session

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.db_session.execute(select(User).where(User.email == email))
        user = result.scalars().first()
        logger.debug("User lookup by email completed", email=mask_email(email), found=user is not None)
        return user

    async def get_by_id(self, user_id: int) -> Optional[User]:
        result = await self.db_session.execute(select(User).where(User.id == user_id))
        user = result.scalars().first()
        logger.debug("User lookup by ID completed", user_id=user_id, found=user is not None)
        return user

    async def get_by_confirmation_code(self, confirmation_code: str) -> Optional[User]:
        result = await self.db_session.execute(
            select(User).where(User.confirmation_code == confirmation_code)
        )
        user = result.scalars().first()
        logger.debug(
            "User lookup by confirmation code completed",
            code_prefix=mask_token(confirmation_code),
            found=user is not None,
        )
        return user

    async def email_exists(self, email: str) -> bool:
        result = await self.db_session.execute(select(User.id).where(User.email == email).limit(1))
        return result.scalar() is not None

    async def username_exists(self, username: str) -> bool:
        result = await self.db_session.execute(select(User.id).where(User.username == username).limit(1))
        return result.scalar() is not None

    async def create(
        self,
        email: str,
        username: str,
        password_hash: str,
        confirmation_code: str,
    ) -> User:
        """Insert a new unverified user.

        Raises:
            sqlalchemy.exc.IntegrityError: If the email, username or code is taken
        """
        user = User(
            email=email,
            username=username,
            password_hash=password_hash,
            confirmation_code=confirmation_code,
            is_email_verified=False,
        )
        self.db_session.add(user)
        try:
            await self.db_session.commit()
        except Exception:
            await self.db_session.rollback()
            raise
        await self.db_session.refresh(user)
        logger.info("User created", user_id=user.id, email=mask_email(email))
        return user

    async def update(
        self,
        user_id: int,
        email: str,
        username: str,
        password_hash: str,
    ) -> User:
        """Overwrite the user's email, username and password hash.

        Raises:
            LookupError: If no user has this id
        """
        user = await self.get_by_id(user_id)
        if user is None:
            raise LookupError(f"No user with id {user_id}")

        user.email = email
        user.username = username
        user.password_hash = password_hash
        user.updated_at = datetime.now(timezone.utc)
        try:
            await self.db_session.commit()
        except Exception:
            await self.db_session.rollback()
            raise
        await self.db_session.refresh(user)
        logger.info("User updated", user_id=user_id)
        return user

    async def delete(self, user_id: int) -> None:
        """Delete the user and its reset tokens in one transaction.

        Tokens are deleted explicitly so the cascade does not depend on the
        database enforcing foreign keys (SQLite does not by default).

        Raises:
            LookupError: If no user has this id
        """
        if await self.get_by_id(user_id) is None:
            raise LookupError(f"No user with id {user_id}")

        try:
            await self.db_session.execute(delete(Token).where(Token.user_id == user_id))
            await self.db_session.execute(delete(User).where(User.id == user_id))
            await self.db_session.commit()
        except Exception:
            await self.db_session.rollback()
            raise
        logger.info("User deleted", user_id=user_id)

    async def confirm(self, confirmation_code: str) -> User:
        """Flip ``is_email_verified`` for the holder of ``confirmation_code``.

        Raises:
            LookupError: If no user holds this code
        """
        user = await self.get_by_confirmation_code(confirmation_code)
        if user is None:
            raise LookupError("No user with this confirmation code")

        user.is_email_verified = True
        user.updated_at = datetime.now(timezone.utc)
        try:
            await self.db_session.commit()
        except Exception:
            await self.db_session.rollback()
            raise
        await self.db_session.refresh(user)
        logger.info("User email confirmed", user_id=user.id)
        return user
