"""Factories wiring the identity core to its infrastructure.

The domain layer only knows the repository and notifier interfaces; this
module is the single place where concrete SQLAlchemy repositories, the bcrypt
hasher and the SMTP notifier are chosen. Each factory takes the request-scoped
``AsyncSession`` so every collaborator of one service shares a transaction
boundary.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from user_service.domain.interfaces.email import INotifier
from user_service.domain.interfaces.repositories import ITokenRepository, IUserRepository
from user_service.domain.services.identity_service import IdentityService
from user_service.domain.services.token_manager import TokenManager
from user_service.infrastructure.repositories.token_repository import TokenRepository
from user_service.infrastructure.repositories.user_repository import UserRepository
from user_service.infrastructure.services.email.email_service import EmailNotifier
from user_service.utils.security import CredentialHasher


def get_user_repository(db_session: AsyncSession) -> IUserRepository:
    return UserRepository(db_session)


def get_token_repository(db_session: AsyncSession) -> ITokenRepository:
    return TokenRepository(db_session)


def get_token_manager(db_session: AsyncSession) -> TokenManager:
    return TokenManager(get_token_repository(db_session))


def create_identity_service(
    db_session: AsyncSession,
    notifier: Optional[INotifier] = None,
    credential_hasher: Optional[CredentialHasher] = None,
    token_manager: Optional[TokenManager] = None,
    password_reset_uri: Optional[str] = None,
) -> IdentityService:
    """Build an ``IdentityService`` bound to ``db_session``.

    Any collaborator left as None is created from settings.
    """
    return IdentityService(
        user_repository=get_user_repository(db_session),
        token_manager=token_manager if token_manager is not None else get_token_manager(db_session),
        credential_hasher=credential_hasher if credential_hasher is not None else CredentialHasher(),
        notifier=notifier if notifier is not None else EmailNotifier(),
        password_reset_uri=password_reset_uri,
    )
