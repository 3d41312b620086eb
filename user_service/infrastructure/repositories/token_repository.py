"""Token Repository implementation using SQLAlchemy.

``tokens.user_id`` is UNIQUE, so storage itself guarantees at most one reset
token per user even when two reset requests race past the lookup.
"""

from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from user_service.core.logging import mask_token
from user_service.domain.entities.token import Token
from user_service.domain.interfaces.repositories import ITokenRepository

logger = get_logger(__name__)


class TokenRepository(ITokenRepository):
    """SQLAlchemy implementation of ``ITokenRepository``."""

    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session

    async def create(self, user_id: int) -> Token:
        """Insert a token with a fresh random value.

        Raises:
            sqlalchemy.exc.IntegrityError: If the user already has a token or
                does not exist (where foreign keys are enforced)
        """
        token = Token(user_id=user_id)
        self.db_session.add(token)
        try:
            await self.db_session.commit()
        except Exception:
            await self.db_session.rollback()
            raise
        await self.db_session.refresh(token)
        logger.info("Token created", user_id=user_id, token_prefix=mask_token(token.token))
        return token

    async def get_by_user_id(self, user_id: int) -> Optional[Token]:
        result = await self.db_session.execute(select(Token).where(Token.user_id == user_id))
        return result.scalars().first()

    async def get_by_user_id_and_value(self, user_id: int, value: str) -> Optional[Token]:
        result = await self.db_session.execute(
            select(Token).where(Token.user_id == user_id, Token.token == value)
        )
        return result.scalars().first()

    async def delete(self, user_id: int) -> None:
        try:
            await self.db_session.execute(delete(Token).where(Token.user_id == user_id))
            await self.db_session.commit()
        except Exception:
            await self.db_session.rollback()
            raise
        logger.info("Tokens deleted", user_id=user_id)
