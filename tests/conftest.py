import os

# Must be set before user_service.core.config.settings is first imported.
os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("BCRYPT_WORK_FACTOR", "4")
os.environ.setdefault("LOG_JSON", "false")

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from user_service.domain.interfaces.email import INotifier
from user_service.domain.interfaces.repositories import ITokenRepository, IUserRepository
from user_service.domain.services.identity_service import IdentityService
from user_service.domain.services.token_manager import TokenManager
from user_service.infrastructure.database.async_db import create_db_and_tables, create_engine_for
from user_service.utils.security import CredentialHasher

TEST_CONFIRMATION_SECRET = "test-confirmation-secret"
TEST_RESET_URI = "https://app.example.com/reset-password"


@pytest.fixture
def credential_hasher():
    """bcrypt at the minimum cost so hashing stays fast in tests."""
    return CredentialHasher(work_factor=4)


@pytest.fixture
def notifier():
    return AsyncMock(spec=INotifier)


@pytest.fixture
def user_repository():
    repo = AsyncMock(spec=IUserRepository)
    repo.email_exists.return_value = False
    repo.username_exists.return_value = False
    return repo


@pytest.fixture
def token_repository():
    repo = AsyncMock(spec=ITokenRepository)
    repo.get_by_user_id.return_value = None
    return repo


@pytest.fixture
def token_manager(token_repository):
    return TokenManager(token_repository, confirmation_secret=TEST_CONFIRMATION_SECRET)


@pytest.fixture
def identity_service(user_repository, token_manager, credential_hasher, notifier):
    return IdentityService(
        user_repository=user_repository,
        token_manager=token_manager,
        credential_hasher=credential_hasher,
        notifier=notifier,
        password_reset_uri=TEST_RESET_URI,
    )


@pytest_asyncio.fixture
async def async_engine():
    engine = create_engine_for("sqlite+aiosqlite:///:memory:")
    await create_db_and_tables(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def async_session(async_engine):
    session_factory = async_sessionmaker(bind=async_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session
