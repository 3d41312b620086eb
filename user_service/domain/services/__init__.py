from .identity_service import IdentityService, PasswordResetRequest
from .token_manager import TokenManager

__all__ = ["IdentityService", "PasswordResetRequest", "TokenManager"]
