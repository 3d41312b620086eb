"""Repository interfaces for abstracting data persistence in the domain layer.

These abstract base classes are the "ports" through which the identity core
reaches durable storage. The core never holds User or Token state between
calls: the repository is the sole source of truth and the sole mutator.

Implementations must enforce uniqueness themselves (email, username, token
value, one token per user). The core's existence checks are early rejections
only; two concurrent requests can both pass them, and the storage constraint is
what keeps the data consistent. Any exception raised by an implementation is
caught by the core and reported as a repository failure.
"""

from abc import ABC, abstractmethod
from typing import Optional

from user_service.domain.entities.token import Token
from user_service.domain.entities.user import User


class IUserRepository(ABC):
    """Contract for user persistence operations."""

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[User]:
        """Retrieve a user by email address, or ``None``."""
        raise NotImplementedError

    @abstractmethod
    async def get_by_id(self, user_id: int) -> Optional[User]:
        """Retrieve a user by identifier, or ``None``."""
        raise NotImplementedError

    @abstractmethod
    async def get_by_confirmation_code(self, confirmation_code: str) -> Optional[User]:
        """Retrieve the user whose stored confirmation code equals ``confirmation_code``."""
        raise NotImplementedError

    @abstractmethod
    async def email_exists(self, email: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def username_exists(self, username: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def create(
        self,
        email: str,
        username: str,
        password_hash: str,
        confirmation_code: str,
    ) -> User:
        """Persist a new, unverified user and return it with its assigned id.

        Must fail if the email or username is already taken.
        """
        raise NotImplementedError

    @abstractmethod
    async def update(
        self,
        user_id: int,
        email: str,
        username: str,
        password_hash: str,
    ) -> User:
        """Overwrite the user's email, username and password hash."""
        raise NotImplementedError

    @abstractmethod
    async def delete(self, user_id: int) -> None:
        """Delete the user and, with it, every token it owns.

        Implementations may raise when no user matched; the core reports both
        that case and genuine faults as a repository failure.
        """
        raise NotImplementedError

    @abstractmethod
    async def confirm(self, confirmation_code: str) -> User:
        """Mark the user holding ``confirmation_code`` as email-verified."""
        raise NotImplementedError


class ITokenRepository(ABC):
    """Contract for password reset token persistence."""

    @abstractmethod
    async def create(self, user_id: int) -> Token:
        """Create a token with a fresh random value for ``user_id``."""
        raise NotImplementedError

    @abstractmethod
    async def get_by_user_id(self, user_id: int) -> Optional[Token]:
        raise NotImplementedError

    @abstractmethod
    async def get_by_user_id_and_value(self, user_id: int, value: str) -> Optional[Token]:
        """Return the token only if both the owner and the value match."""
        raise NotImplementedError

    @abstractmethod
    async def delete(self, user_id: int) -> None:
        """Delete the token(s) owned by ``user_id``."""
        raise NotImplementedError
