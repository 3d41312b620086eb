from __future__ import annotations

"""Closed error taxonomy for the user service.

Every failure an operation can report is an ``IdentityError`` subclass carrying:

- ``kind``: a member of the closed ``ErrorKind`` enum. Callers (for example an
  HTTP layer) switch on this value and never on message text.
- ``code``: a machine-readable message key, specific to the operation that
  failed (e.g. ``get_user_by_email_failure``).
- ``message``: the human-readable, translated text for ``code``.

Repository faults are always reported as ``RepositoryFailureError`` with a
generic, operation-specific message so that storage internals never reach the
caller.
"""

from enum import Enum
from typing import Final

__all__: Final = [
    "ErrorKind",
    "IdentityError",
    "ValidationFailureError",
    "AlreadyExistsError",
    "NotFoundError",
    "UserNotFoundError",
    "TokenNotFoundError",
    "IdenticalPasswordError",
    "PasswordMismatchError",
    "NotVerifiedError",
    "AlreadyVerifiedError",
    "RepositoryFailureError",
    "EmailDeliveryError",
]


class ErrorKind(str, Enum):
    """The fixed set of failure kinds reported by the identity core."""

    VALIDATION_FAILURE = "validation_failure"
    ALREADY_EXISTS = "already_exists"
    NOT_FOUND = "not_found"
    IDENTICAL_PASSWORD = "identical_password"
    PASSWORD_MISMATCH = "password_mismatch"
    NOT_VERIFIED = "not_verified"
    ALREADY_VERIFIED = "already_verified"
    REPOSITORY_FAILURE = "repository_failure"


class IdentityError(Exception):
    """Base class for every error handed back by the identity core.

    Attributes:
        kind (ErrorKind): The closed error kind, set by each subclass.
        code (str): Message key identifying the exact failure.
        message (str): Human-readable (translated) message.
    """

    kind: ErrorKind

    def __init__(self, message: str, code: str):
        self.message = message
        self.code = code
        Exception.__init__(self, self.message)

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, code={self.code!r})"


# ---------------------------------------------------------------------------
# Input errors (typically map to 400 Bad Request)
# ---------------------------------------------------------------------------


class ValidationFailureError(IdentityError):
    """Raised when an email, username or password does not have a valid shape."""

    kind = ErrorKind.VALIDATION_FAILURE

    def __init__(self, message: str, code: str = "validation_failure"):
        super().__init__(message, code)


class IdenticalPasswordError(IdentityError):
    """Raised when a password change supplies the same old and new password."""

    kind = ErrorKind.IDENTICAL_PASSWORD

    def __init__(self, message: str, code: str = "passwords_identical"):
        super().__init__(message, code)


# ---------------------------------------------------------------------------
# State / business-rule errors
# ---------------------------------------------------------------------------


class AlreadyExistsError(IdentityError):
    """Raised when the email or username is already registered (409 Conflict)."""

    kind = ErrorKind.ALREADY_EXISTS

    def __init__(self, message: str, code: str = "already_exists"):
        super().__init__(message, code)


class NotFoundError(IdentityError):
    """Base for lookups that found nothing (404 Not Found)."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, message: str, code: str = "not_found"):
        super().__init__(message, code)


class UserNotFoundError(NotFoundError):
    """Raised when no user matches the email, id or confirmation code."""

    def __init__(self, message: str = "User not found", code: str = "user_not_found"):
        super().__init__(message, code)


class TokenNotFoundError(NotFoundError):
    """Raised when no reset token matches.

    A missing token and a token whose value does not match are
    reported the same way.
    """

    def __init__(self, message: str = "Token not found", code: str = "token_not_found"):
        super().__init__(message, code)


class PasswordMismatchError(IdentityError):
    """Raised when the old password supplied for a change is wrong."""

    kind = ErrorKind.PASSWORD_MISMATCH

    def __init__(self, message: str, code: str = "password_does_not_match"):
        super().__init__(message, code)


class NotVerifiedError(IdentityError):
    """Raised when an unverified account tries to authenticate (403 Forbidden)."""

    kind = ErrorKind.NOT_VERIFIED

    def __init__(self, message: str, code: str = "user_not_email_verified"):
        super().__init__(message, code)


class AlreadyVerifiedError(IdentityError):
    """Raised when confirming an email that has already been confirmed."""

    kind = ErrorKind.ALREADY_VERIFIED

    def __init__(self, message: str, code: str = "user_already_email_verified"):
        super().__init__(message, code)


# ---------------------------------------------------------------------------
# Infrastructure errors (typically map to 500 Internal Server Error)
# ---------------------------------------------------------------------------


class RepositoryFailureError(IdentityError):
    """Raised for any fault below the business-logic layer.

    The message is intentionally generic; the underlying exception is chained
    via ``raise ... from`` for logging only.
    """

    kind = ErrorKind.REPOSITORY_FAILURE

    def __init__(self, message: str, code: str = "repository_failure"):
        super().__init__(message, code)


class EmailDeliveryError(Exception):
    """Raised by the email notifier when a message cannot be rendered or sent.

    This never escapes the identity service; it is rewrapped into a
    ``RepositoryFailureError``.
    """
