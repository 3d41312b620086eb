from .identity import (
    create_identity_service,
    get_token_manager,
    get_token_repository,
    get_user_repository,
)

__all__ = [
    "create_identity_service",
    "get_token_manager",
    "get_token_repository",
    "get_user_repository",
]
