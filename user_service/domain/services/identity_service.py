"""Identity Domain Service.

This service composes validation, credential hashing, token management, the
user repository and the notifier into the account workflows: registration,
email confirmation, authentication, password change, account deletion and
token-based password reset.

Every operation is request-scoped. The service keeps no user or token state
between calls and holds only configuration fixed at construction. Within one
operation the steps run strictly in order (validate, load state, mutate,
notify) and the first failure ends the operation. Every failure is reported as
an ``IdentityError`` subclass; raw repository exceptions never escape.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from user_service.core.config.settings import settings
from user_service.core.exceptions import (
    AlreadyExistsError,
    AlreadyVerifiedError,
    IdenticalPasswordError,
    NotVerifiedError,
    PasswordMismatchError,
    RepositoryFailureError,
    TokenNotFoundError,
    UserNotFoundError,
    ValidationFailureError,
)
from user_service.core.logging import mask_email, mask_token
from user_service.domain.entities.token import Token
from user_service.domain.entities.user import User
from user_service.domain.interfaces.email import INotifier
from user_service.domain.interfaces.repositories import IUserRepository
from user_service.domain.services.token_manager import TokenManager
from user_service.domain.validation import (
    ValidationResult,
    valid_email,
    valid_password,
    valid_username,
)
from user_service.utils.i18n import get_translated_message
from user_service.utils.security import CredentialHasher

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PasswordResetRequest:
    """Result of a password reset request.

    The token value is returned so the caller can audit or test the flow; it
    must not be forwarded anywhere except the email already sent.
    """

    user: User
    token: Token


class IdentityService:
    """Orchestrates the account identity and credential workflows.

    Responsibilities:
    - Register users and send their confirmation code
    - Confirm email addresses (once)
    - Authenticate verified users
    - Change and reset passwords
    - Delete accounts

    Error policy:
    - Business rule violations raise their own error kind directly
    - Repository and notifier faults raise ``RepositoryFailureError`` with an
      operation-specific message, chained to the original exception
    """

    def __init__(
        self,
        user_repository: IUserRepository,
        token_manager: TokenManager,
        credential_hasher: CredentialHasher,
        notifier: INotifier,
        password_reset_uri: Optional[str] = None,
    ):
        """Initialize the identity service with its collaborators.

        Args:
            user_repository: Repository for user data access
            token_manager: Reset token storage and confirmation code signing
            credential_hasher: Password hashing with the configured work factor
            notifier: Delivers confirmation and reset emails
            password_reset_uri: Base URI of reset links; defaults to
                ``settings.EMAIL_PASSWORD_RESET_URI``
        """
        self._user_repository = user_repository
        self._token_manager = token_manager
        self._hasher = credential_hasher
        self._notifier = notifier
        self._password_reset_uri = (password_reset_uri or settings.EMAIL_PASSWORD_RESET_URI).rstrip("/")

    # ------------------------------------------------------------------
    # Registration and confirmation
    # ------------------------------------------------------------------

    async def register(self, email: str, username: str, password: str, language: str = "en") -> User:
        """Register a new, unverified user and send the confirmation email.

        Fields are validated in the order email, username, password and the
        first violation is reported. Email uniqueness is checked before
        username uniqueness.

        If the confirmation email cannot be sent after the user row was
        written, the row is deleted again so the address can register anew.
        Should that delete fail too, the orphaned row is logged and left.

        Returns:
            User: The created user

        Raises:
            ValidationFailureError: If a field has an invalid shape
            AlreadyExistsError: If the email or username is taken
            RepositoryFailureError: If a uniqueness query, hashing, the write
                or the confirmation email fails
        """
        request_logger = logger.bind(operation="register", email=mask_email(email))

        self._require(valid_email(email), language)
        self._require(valid_username(username), language)
        self._require(valid_password(password), language)

        try:
            email_exists = await self._user_repository.email_exists(email)
        except Exception as e:
            raise self._repository_failure("get_email_exists_failure", language, e) from e
        if email_exists:
            request_logger.warning("Registration rejected - email already exists")
            raise AlreadyExistsError(
                get_translated_message("email_already_exists", language), "email_already_exists"
            )

        try:
            username_exists = await self._user_repository.username_exists(username)
        except Exception as e:
            raise self._repository_failure("get_username_exists_failure", language, e) from e
        if username_exists:
            request_logger.warning("Registration rejected - username already exists")
            raise AlreadyExistsError(
                get_translated_message("username_already_exists", language), "username_already_exists"
            )

        try:
            confirmation_code = self._token_manager.generate_confirmation_code(email)
            password_hash = await self._hasher.hash(password, language)
            user = await self._user_repository.create(email, username, password_hash, confirmation_code)
        except Exception as e:
            raise self._repository_failure("create_user_failure", language, e) from e

        try:
            await self._notifier.send_confirmation_email(username, email, confirmation_code, language)
        except Exception as e:
            await self._discard_unconfirmed_user(user)
            raise self._repository_failure("create_user_failure", language, e) from e

        request_logger.info("User registered", user_id=user.id)
        return user

    async def confirm_email(self, confirmation_code: str, language: str = "en") -> User:
        """Consume a confirmation code and mark the user as verified.

        The code must be stored on a user record and carry a valid signature
        for that user's email. Confirmation is single-use: once verified, the
        same code is rejected with ``AlreadyVerifiedError``.

        Raises:
            UserNotFoundError: If no user holds the code or its signature does
                not match that user
            AlreadyVerifiedError: If the user is already verified
            RepositoryFailureError: If the lookup or the update fails
        """
        try:
            user = await self._user_repository.get_by_confirmation_code(confirmation_code)
        except Exception as e:
            raise self._repository_failure("get_user_by_confirmation_code_failure", language, e) from e

        if user is None:
            logger.warning("Confirmation with unknown code", code_prefix=mask_token(confirmation_code))
            raise self._user_not_found(language)

        if user.is_email_verified:
            logger.info("Confirmation rejected - already verified", user_id=user.id)
            raise AlreadyVerifiedError(
                get_translated_message("user_already_email_verified", language),
                "user_already_email_verified",
            )

        if self._token_manager.decode_confirmation_code(confirmation_code) != user.email:
            logger.warning("Confirmation code does not match its user", user_id=user.id)
            raise self._user_not_found(language)

        try:
            confirmed_user = await self._user_repository.confirm(confirmation_code)
        except Exception as e:
            raise self._repository_failure("confirm_user_failure", language, e) from e

        logger.info("Email confirmed", user_id=user.id)
        return confirmed_user

    async def resend_confirmation_email(self, email: str, language: str = "en") -> User:
        """Send the stored confirmation code again.

        No new code is minted, so a code from an earlier email stays valid.

        Raises:
            UserNotFoundError: If no user has this email
            AlreadyVerifiedError: If the user is already verified
            RepositoryFailureError: If the lookup or the email fails
        """
        user = await self.get_user(email, language)
        if user.is_email_verified:
            raise AlreadyVerifiedError(
                get_translated_message("user_already_email_verified", language),
                "user_already_email_verified",
            )

        try:
            await self._notifier.send_confirmation_email(
                user.username, user.email, user.confirmation_code, language
            )
        except Exception as e:
            raise self._repository_failure("send_confirmation_email_failure", language, e) from e

        logger.info("Confirmation email resent", user_id=user.id)
        return user

    # ------------------------------------------------------------------
    # Lookups and authentication
    # ------------------------------------------------------------------

    async def get_user(self, email: str, language: str = "en") -> User:
        """Load a user by email.

        Raises:
            UserNotFoundError: If no user has this email
            RepositoryFailureError: If the lookup fails
        """
        try:
            user = await self._user_repository.get_by_email(email)
        except Exception as e:
            raise self._repository_failure("get_user_by_email_failure", language, e) from e
        if user is None:
            logger.warning("User lookup by email found nothing", email=mask_email(email))
            raise self._user_not_found(language)
        return user

    async def get_user_by_id(self, user_id: int, language: str = "en") -> User:
        """Load a user by id.

        Raises:
            UserNotFoundError: If no user has this id
            RepositoryFailureError: If the lookup fails
        """
        try:
            user = await self._user_repository.get_by_id(user_id)
        except Exception as e:
            raise self._repository_failure("get_user_by_id_failure", language, e) from e
        if user is None:
            logger.warning("User lookup by id found nothing", user_id=user_id)
            raise self._user_not_found(language)
        return user

    async def authenticate(self, email: str, password: str, language: str = "en") -> bool:
        """Check a verified user's password.

        Unverified accounts are rejected before the password is looked at, so
        the result never reveals whether a password is right for an account
        that cannot log in.

        Returns:
            bool: Whether the password matches. A mismatch is not an error.

        Raises:
            UserNotFoundError: If no user has this email
            NotVerifiedError: If the email is not verified yet
            RepositoryFailureError: If the lookup fails or the stored hash is
                unusable
        """
        user = await self.get_user(email, language)

        if not user.is_email_verified:
            logger.warning("Authentication rejected - email not verified", user_id=user.id)
            raise NotVerifiedError(
                get_translated_message("user_not_email_verified", language), "user_not_email_verified"
            )

        matched = await self._hasher.verify(password, user.password_hash, language)
        logger.info("Authentication attempt", user_id=user.id, success=matched)
        return matched

    # ------------------------------------------------------------------
    # Password and account management
    # ------------------------------------------------------------------

    async def change_password(
        self, user_id: int, old_password: str, new_password: str, language: str = "en"
    ) -> User:
        """Replace a password after verifying the old one.

        Identical passwords are rejected before storage or hashing is touched.

        Raises:
            IdenticalPasswordError: If old and new passwords are equal
            ValidationFailureError: If the new password has an invalid shape
            UserNotFoundError: If no user has this id
            PasswordMismatchError: If the old password is wrong
            RepositoryFailureError: If a lookup, hashing or the update fails
        """
        if old_password == new_password:
            raise IdenticalPasswordError(
                get_translated_message("passwords_identical", language), "passwords_identical"
            )
        self._require(valid_password(new_password), language)

        user = await self.get_user_by_id(user_id, language)

        if not await self._hasher.verify(old_password, user.password_hash, language):
            logger.warning("Password change rejected - old password mismatch", user_id=user_id)
            raise PasswordMismatchError(
                get_translated_message("password_does_not_match", language), "password_does_not_match"
            )

        updated_user = await self._store_password(user, new_password, language)
        logger.info("Password changed", user_id=user_id)
        return updated_user

    async def delete_account(self, user_id: int, language: str = "en") -> None:
        """Delete a user through the repository.

        There is no existence check first: deleting an unknown id and a storage
        fault are both reported as ``RepositoryFailureError``.
        """
        try:
            await self._user_repository.delete(user_id)
        except Exception as e:
            raise self._repository_failure("delete_user_failure", language, e) from e
        logger.info("Account deleted", user_id=user_id)

    # ------------------------------------------------------------------
    # Password reset
    # ------------------------------------------------------------------

    async def request_password_reset(self, email: str, language: str = "en") -> PasswordResetRequest:
        """Issue (or reuse) a reset token and email the reset link.

        The link has the form ``{password_reset_uri}/{user_id}/{token}``.
        While a token is outstanding, repeated requests reuse it.

        Raises:
            UserNotFoundError: If no user has this email
            TokenNotFoundError: If no token could be issued
            RepositoryFailureError: If a lookup, the token write or the email fails
        """
        user = await self.get_user(email, language)

        token = await self._token_manager.issue(user.id, language)
        if token is None:
            raise self._token_not_found(language)

        reset_link = f"{self._password_reset_uri}/{user.id}/{token.token}"
        try:
            await self._notifier.send_reset_email(user.username, user.email, reset_link, language)
        except Exception as e:
            raise self._repository_failure("send_reset_email_failure", language, e) from e

        logger.info("Password reset requested", user_id=user.id, token_prefix=mask_token(token.token))
        return PasswordResetRequest(user=user, token=token)

    async def reset_password(
        self, user_id: int, token_value: str, new_password: str, language: str = "en"
    ) -> User:
        """Set a new password using a reset token, then consume the token.

        A missing token and a wrong token value are reported identically. The
        new password is validated only once the token is known to be valid.
        If the token cannot be deleted after the password was written, the new
        password stays in effect and ``delete_token_failure`` is reported.

        Raises:
            UserNotFoundError: If no user has this id
            TokenNotFoundError: If the (user, token) pair does not exist
            ValidationFailureError: If the new password has an invalid shape
            RepositoryFailureError: If a lookup, the password update
                (``update_user_failure``) or the token delete
                (``delete_token_failure``) fails
        """
        user = await self.get_user_by_id(user_id, language)

        token = await self._token_manager.find_by_user_and_value(user_id, token_value, language)
        if token is None:
            logger.warning("Password reset rejected - token not found", user_id=user_id)
            raise self._token_not_found(language)

        self._require(valid_password(new_password), language)

        updated_user = await self._store_password(user, new_password, language)
        await self._token_manager.revoke(user_id, language)

        logger.info("Password reset completed", user_id=user_id)
        return updated_user

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _store_password(self, user: User, new_password: str, language: str) -> User:
        try:
            password_hash = await self._hasher.hash(new_password, language)
            return await self._user_repository.update(user.id, user.email, user.username, password_hash)
        except Exception as e:
            raise self._repository_failure("update_user_failure", language, e) from e

    async def _discard_unconfirmed_user(self, user: User) -> None:
        """Compensate a registration whose confirmation email was not sent."""
        try:
            await self._user_repository.delete(user.id)
        except Exception as e:
            logger.error(
                "Could not remove user after confirmation email failure; row left orphaned",
                user_id=user.id,
                error=str(e),
            )
        else:
            logger.warning("Removed user after confirmation email failure", user_id=user.id)

    @staticmethod
    def _require(result: ValidationResult, language: str) -> None:
        if not result.valid:
            code = result.reason.value
            logger.info("Field validation failed", reason=code)
            raise ValidationFailureError(get_translated_message(code, language), code)

    @staticmethod
    def _repository_failure(code: str, language: str, error: Exception) -> RepositoryFailureError:
        logger.error(
            "Repository operation failed",
            failure=code,
            error=str(error),
            error_type=type(error).__name__,
        )
        return RepositoryFailureError(get_translated_message(code, language), code)

    @staticmethod
    def _user_not_found(language: str) -> UserNotFoundError:
        return UserNotFoundError(get_translated_message("user_not_found", language), "user_not_found")

    @staticmethod
    def _token_not_found(language: str) -> TokenNotFoundError:
        return TokenNotFoundError(get_translated_message("token_not_found", language), "token_not_found")
