"""Token Manager Domain Service.

Two token kinds live here, with different lifecycles:

- **Confirmation codes** are signed JWTs embedding the target email. The
  signature makes them self-verifying, but the identity service also stores the
  code on the user record and consumes it by flipping ``is_email_verified``;
  nothing is ever revoked.
- **Reset tokens** are opaque random values with no embedded meaning. They are
  only valid while a matching row exists in storage and are deleted after use.
"""

from datetime import datetime, timezone
from typing import Optional

import structlog
from jose import JWTError, jwt

from user_service.core.config.settings import settings
from user_service.core.exceptions import RepositoryFailureError
from user_service.core.logging import mask_token
from user_service.domain.entities.token import Token
from user_service.domain.interfaces.repositories import ITokenRepository
from user_service.utils.i18n import get_translated_message

logger = structlog.get_logger(__name__)


class TokenManager:
    """Issues, finds and revokes reset tokens; signs and decodes confirmation codes.

    Every repository fault is rewrapped into ``RepositoryFailureError`` with a
    message specific to the failing lookup or write.
    """

    def __init__(
        self,
        token_repository: ITokenRepository,
        confirmation_secret: Optional[str] = None,
        algorithm: Optional[str] = None,
    ):
        """Initialize the token manager.

        Args:
            token_repository: Storage for reset tokens
            confirmation_secret: Key used to sign confirmation codes; defaults
                to ``settings.CONFIRMATION_SECRET``
            algorithm: HMAC algorithm for confirmation codes; defaults to
                ``settings.CONFIRMATION_ALGORITHM``
        """
        self._token_repository = token_repository
        self._confirmation_secret = (
            confirmation_secret
            if confirmation_secret is not None
            else settings.CONFIRMATION_SECRET.get_secret_value()
        )
        self._algorithm = algorithm or settings.CONFIRMATION_ALGORITHM

    # ------------------------------------------------------------------
    # Confirmation codes
    # ------------------------------------------------------------------

    def generate_confirmation_code(self, email: str) -> str:
        """Sign a confirmation code bound to ``email``."""
        claims = {
            "email": email,
            "iat": int(datetime.now(timezone.utc).timestamp()),
        }
        return jwt.encode(claims, self._confirmation_secret, algorithm=self._algorithm)

    def decode_confirmation_code(self, code: str) -> Optional[str]:
        """Return the email embedded in ``code``, or None if the signature is bad.

        Decoding is independent of storage: a code that decodes may already
        have been consumed.
        """
        try:
            claims = jwt.decode(code, self._confirmation_secret, algorithms=[self._algorithm])
        except JWTError:
            logger.warning("Confirmation code failed signature check", code_prefix=mask_token(code))
            return None
        email = claims.get("email")
        return email if isinstance(email, str) else None

    # ------------------------------------------------------------------
    # Reset tokens
    # ------------------------------------------------------------------

    async def find_by_user(self, user_id: int, language: str = "en") -> Optional[Token]:
        """Return the outstanding reset token of ``user_id``, if any."""
        try:
            return await self._token_repository.get_by_user_id(user_id)
        except Exception as e:
            logger.error("Token lookup by user failed", user_id=user_id, error=str(e))
            raise RepositoryFailureError(
                get_translated_message("get_token_by_user_id_failure", language),
                "get_token_by_user_id_failure",
            ) from e

    async def find_by_user_and_value(
        self, user_id: int, value: str, language: str = "en"
    ) -> Optional[Token]:
        """Return the token only if it belongs to ``user_id`` and equals ``value``.

        A missing token and a wrong value are indistinguishable to the caller.
        """
        try:
            return await self._token_repository.get_by_user_id_and_value(user_id, value)
        except Exception as e:
            logger.error(
                "Token lookup by user and value failed",
                user_id=user_id,
                token_prefix=mask_token(value),
                error=str(e),
            )
            raise RepositoryFailureError(
                get_translated_message("get_token_by_user_id_token_value_failure", language),
                "get_token_by_user_id_token_value_failure",
            ) from e

    async def issue(self, user_id: int, language: str = "en") -> Optional[Token]:
        """Return the outstanding token of ``user_id``, creating one if none exists.

        Repeated calls while a token is outstanding return the same token.
        ``None`` is only returned if the repository created nothing.
        Two concurrent first calls can both miss the lookup; the one-token-per-
        user constraint in storage makes the loser fail with a repository error.
        """
        token = await self.find_by_user(user_id, language)
        if token is not None:
            logger.info("Reusing outstanding reset token", user_id=user_id, token_prefix=mask_token(token.token))
            return token

        try:
            token = await self._token_repository.create(user_id)
        except Exception as e:
            logger.error("Reset token creation failed", user_id=user_id, error=str(e))
            raise RepositoryFailureError(
                get_translated_message("create_token_failure", language),
                "create_token_failure",
            ) from e

        if token is not None:
            logger.info("Issued reset token", user_id=user_id, token_prefix=mask_token(token.token))
        return token

    async def revoke(self, user_id: int, language: str = "en") -> None:
        """Delete the reset token of ``user_id``."""
        try:
            await self._token_repository.delete(user_id)
        except Exception as e:
            logger.error("Reset token deletion failed", user_id=user_id, error=str(e))
            raise RepositoryFailureError(
                get_translated_message("delete_token_failure", language),
                "delete_token_failure",
            ) from e
        logger.info("Revoked reset token", user_id=user_id)

    def __repr__(self) -> str:
        return f"TokenManager(algorithm={self._algorithm!r})"
