"""Shape validation for registration and password fields.

The three predicates are pure: they never touch storage, never raise, and
report a member of ``ValidationReason`` when a value is rejected. The identity
service evaluates them in a fixed order (email, username, password) so the
first reported reason is reproducible.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Final, Optional

EMAIL_PATTERN: Final = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
EMAIL_MAX_LENGTH: Final = 254

# Leading letter, then letters, digits or underscores; 3-30 characters overall.
USERNAME_PATTERN: Final = re.compile(r"^[A-Za-z][A-Za-z0-9_]{2,29}$")

PASSWORD_MIN_LENGTH: Final = 8
# bcrypt only reads the first 72 bytes of a password.
PASSWORD_MAX_BYTES: Final = 72
_LETTER = re.compile(r"[A-Za-z]")
_DIGIT = re.compile(r"[0-9]")


class ValidationReason(str, Enum):
    """Why a field was rejected. Values double as message keys."""

    EMAIL_INVALID = "email_validation_fail"
    USERNAME_INVALID = "username_validation_fail"
    PASSWORD_TOO_SHORT = "password_too_short"
    PASSWORD_TOO_LONG = "password_too_long"
    PASSWORD_INVALID_CHARACTER = "password_invalid_character"
    PASSWORD_MISSING_LETTER = "password_missing_letter"
    PASSWORD_MISSING_DIGIT = "password_missing_digit"


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Outcome of a single field check."""

    valid: bool
    reason: Optional[ValidationReason] = None

    def __bool__(self) -> bool:
        return self.valid


VALID: Final = ValidationResult(True)


def valid_email(email: str) -> ValidationResult:
    """Check that ``email`` is a plausible address of at most 254 characters."""
    if not isinstance(email, str) or len(email) > EMAIL_MAX_LENGTH:
        return ValidationResult(False, ValidationReason.EMAIL_INVALID)
    if not EMAIL_PATTERN.fullmatch(email):
        return ValidationResult(False, ValidationReason.EMAIL_INVALID)
    return VALID


def valid_username(username: str) -> ValidationResult:
    if not isinstance(username, str) or not USERNAME_PATTERN.fullmatch(username):
        return ValidationResult(False, ValidationReason.USERNAME_INVALID)
    return VALID


def valid_password(password: str) -> ValidationResult:
    """Check the password length and complexity floor.

    Rules, in order:
        - at least 8 characters
        - at most 72 bytes once UTF-8 encoded
        - no NUL character or unencodable code point
        - at least one letter
        - at least one digit
    """
    if not isinstance(password, str) or len(password) < PASSWORD_MIN_LENGTH:
        return ValidationResult(False, ValidationReason.PASSWORD_TOO_SHORT)
    try:
        encoded = password.encode("utf-8")
    except UnicodeEncodeError:
        return ValidationResult(False, ValidationReason.PASSWORD_INVALID_CHARACTER)
    if len(encoded) > PASSWORD_MAX_BYTES:
        return ValidationResult(False, ValidationReason.PASSWORD_TOO_LONG)
    if b"\x00" in encoded:
        return ValidationResult(False, ValidationReason.PASSWORD_INVALID_CHARACTER)
    if not _LETTER.search(password):
        return ValidationResult(False, ValidationReason.PASSWORD_MISSING_LETTER)
    if not _DIGIT.search(password):
        return ValidationResult(False, ValidationReason.PASSWORD_MISSING_DIGIT)
    return VALID
