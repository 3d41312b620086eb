from .validators import (
    ValidationReason,
    ValidationResult,
    valid_email,
    valid_password,
    valid_username,
)

__all__ = [
    "ValidationReason",
    "ValidationResult",
    "valid_email",
    "valid_password",
    "valid_username",
]
