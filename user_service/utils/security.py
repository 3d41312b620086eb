"""Password hashing and verification.

Hashing uses bcrypt through passlib. The work factor is fixed per hasher
instance from configuration; bcrypt embeds its salt and cost in the hash, so
verification needs nothing but the stored value.

bcrypt is slow and CPU-bound, so both operations run in the
event loop's default executor and never block other requests.
"""

import asyncio
from typing import Optional

import structlog
from passlib.context import CryptContext

from user_service.core.config.settings import settings
from user_service.core.exceptions import RepositoryFailureError
from user_service.domain.validation.validators import PASSWORD_MAX_BYTES
from user_service.utils.i18n import get_translated_message

logger = structlog.get_logger(__name__)


class CredentialHasher:
    """One-way password hashing with a configurable bcrypt work factor.

    Any failure of the primitive, such as a malformed stored hash, is reported
    as ``RepositoryFailureError`` rather than propagated raw.

    Attributes:
        work_factor (int): bcrypt cost exponent used for new hashes.
    """

    def __init__(self, work_factor: Optional[int] = None):
        self.work_factor = work_factor if work_factor is not None else settings.BCRYPT_WORK_FACTOR
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=self.work_factor,
        )

    async def hash(self, plaintext: str, language: str = "en") -> str:
        """Hash ``plaintext`` with a fresh salt.

        Raises:
            RepositoryFailureError: If the bcrypt primitive fails.
        """
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, self._context.hash, plaintext)
        except (ValueError, TypeError) as e:
            logger.error("Password hashing failed", error_type=type(e).__name__)
            raise RepositoryFailureError(
                get_translated_message("hash_password_failure", language),
                "hash_password_failure",
            ) from e

    async def verify(self, plaintext: str, password_hash: str, language: str = "en") -> bool:
        """Check ``plaintext`` against ``password_hash`` in constant time.

        Returns:
            bool: True on match. A mismatch is a normal negative result.
            Plaintexts bcrypt cannot represent (over 72 bytes, NUL, or not
            UTF-8 encodable) never match and never reach bcrypt.

        Raises:
            RepositoryFailureError: If the stored hash is malformed or the
                primitive fails.
        """
        if not _representable(plaintext):
            return False

        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, self._context.verify, plaintext, password_hash)
        except (ValueError, TypeError) as e:
            logger.error("Password verification failed", error_type=type(e).__name__)
            raise RepositoryFailureError(
                get_translated_message("verify_password_failure", language),
                "verify_password_failure",
            ) from e


def _representable(plaintext: str) -> bool:
    """Whether bcrypt sees every byte of ``plaintext``."""
    try:
        encoded = plaintext.encode("utf-8")
    except (UnicodeEncodeError, AttributeError):
        return False
    return len(encoded) <= PASSWORD_MAX_BYTES and b"\x00" not in encoded
