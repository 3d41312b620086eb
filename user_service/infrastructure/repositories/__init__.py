from .token_repository import TokenRepository
from .user_repository import UserRepository

__all__ = ["TokenRepository", "UserRepository"]
