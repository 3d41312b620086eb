import pytest
import pytest_asyncio
from unittest.mock import AsyncMock

from tests.conftest import TEST_RESET_URI
from tests.factories.token import create_fake_token
from tests.factories.user import create_fake_user
from user_service.domain.services.identity_service import IdentityService
from user_service.core.exceptions import (
    AlreadyExistsError,
    AlreadyVerifiedError,
    ErrorKind,
    IdenticalPasswordError,
    NotVerifiedError,
    PasswordMismatchError,
    RepositoryFailureError,
    TokenNotFoundError,
    UserNotFoundError,
    ValidationFailureError,
)


@pytest.fixture
def created_user(user_repository):
    """Make ``create`` echo back a user built from its arguments."""

    async def _create(email, username, password_hash, confirmation_code):
        return create_fake_user(
            id=1,
            email=email,
            username=username,
            password_hash=password_hash,
            confirmation_code=confirmation_code,
        )

    user_repository.create.side_effect = _create
    return user_repository


@pytest_asyncio.fixture
async def verified_user(credential_hasher, user_repository):
    user = create_fake_user(
        id=1,
        email="a@x.com",
        username="alice",
        password_hash=await credential_hasher.hash("Password1"),
        is_email_verified=True,
    )
    user_repository.get_by_email.return_value = user
    user_repository.get_by_id.return_value = user
    return user


# ---------------------------------------------------------------------------
# register
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_register_creates_unverified_user_and_sends_code(
    identity_service, created_user, notifier, token_manager, credential_hasher
):
    user = await identity_service.register("a@x.com", "alice", "Password1")

    assert user.is_email_verified is False
    assert user.password_hash != "Password1"
    assert await credential_hasher.verify("Password1", user.password_hash) is True
    assert token_manager.decode_confirmation_code(user.confirmation_code) == "a@x.com"
    notifier.send_confirmation_email.assert_awaited_once_with(
        "alice", "a@x.com", user.confirmation_code, "en"
    )


@pytest.mark.asyncio
async def test_register_validates_email_first(identity_service, user_repository):
    with pytest.raises(ValidationFailureError) as exc_info:
        await identity_service.register("not-an-email", "1x", "short")

    assert exc_info.value.code == "email_validation_fail"
    assert exc_info.value.kind is ErrorKind.VALIDATION_FAILURE
    user_repository.email_exists.assert_not_awaited()


@pytest.mark.asyncio
async def test_register_validates_username_before_password(identity_service):
    with pytest.raises(ValidationFailureError) as exc_info:
        await identity_service.register("a@x.com", "1x", "short")
    assert exc_info.value.code == "username_validation_fail"


@pytest.mark.asyncio
async def test_register_rejects_short_password(identity_service, user_repository):
    with pytest.raises(ValidationFailureError) as exc_info:
        await identity_service.register("a@x.com", "alice", "short")

    assert exc_info.value.code == "password_too_short"
    user_repository.create.assert_not_awaited()


@pytest.mark.asyncio
async def test_register_duplicate_email(identity_service, user_repository):
    user_repository.email_exists.return_value = True

    with pytest.raises(AlreadyExistsError) as exc_info:
        await identity_service.register("a@x.com", "alice", "Password1")

    assert exc_info.value.code == "email_already_exists"
    user_repository.username_exists.assert_not_awaited()
    user_repository.create.assert_not_awaited()


@pytest.mark.asyncio
async def test_register_duplicate_username(identity_service, user_repository):
    user_repository.username_exists.return_value = True

    with pytest.raises(AlreadyExistsError) as exc_info:
        await identity_service.register("a@x.com", "alice", "Password1")

    assert exc_info.value.code == "username_already_exists"
    user_repository.create.assert_not_awaited()


@pytest.mark.asyncio
async def test_register_email_query_failure_is_not_already_exists(identity_service, user_repository):
    user_repository.email_exists.side_effect = RuntimeError("connection reset")

    with pytest.raises(RepositoryFailureError) as exc_info:
        await identity_service.register("a@x.com", "alice", "Password1")

    assert exc_info.value.code == "get_email_exists_failure"
    assert "connection reset" not in str(exc_info.value)


@pytest.mark.asyncio
async def test_register_username_query_failure(identity_service, user_repository):
    user_repository.username_exists.side_effect = RuntimeError("connection reset")

    with pytest.raises(RepositoryFailureError) as exc_info:
        await identity_service.register("a@x.com", "alice", "Password1")
    assert exc_info.value.code == "get_username_exists_failure"


@pytest.mark.asyncio
async def test_register_write_failure(identity_service, user_repository, notifier):
    user_repository.create.side_effect = RuntimeError("UNIQUE constraint failed: users.email")

    with pytest.raises(RepositoryFailureError) as exc_info:
        await identity_service.register("a@x.com", "alice", "Password1")

    assert exc_info.value.code == "create_user_failure"
    assert "UNIQUE" not in exc_info.value.message
    notifier.send_confirmation_email.assert_not_awaited()


@pytest.mark.asyncio
async def test_register_email_failure_removes_new_user(identity_service, created_user, notifier):
    notifier.send_confirmation_email.side_effect = RuntimeError("SMTP down")

    with pytest.raises(RepositoryFailureError) as exc_info:
        await identity_service.register("a@x.com", "alice", "Password1")

    assert exc_info.value.code == "create_user_failure"
    created_user.delete.assert_awaited_once_with(1)


@pytest.mark.asyncio
async def test_register_email_failure_with_failed_cleanup(identity_service, created_user, notifier):
    notifier.send_confirmation_email.side_effect = RuntimeError("SMTP down")
    created_user.delete.side_effect = RuntimeError("database gone")

    with pytest.raises(RepositoryFailureError) as exc_info:
        await identity_service.register("a@x.com", "alice", "Password1")
    assert exc_info.value.code == "create_user_failure"


@pytest.mark.asyncio
async def test_register_message_is_translated(identity_service, user_repository):
    user_repository.email_exists.return_value = True

    with pytest.raises(AlreadyExistsError) as exc_info:
        await identity_service.register("a@x.com", "alice", "Password1", language="es")
    assert exc_info.value.message != "An account with this email already exists"


# ---------------------------------------------------------------------------
# confirm_email / resend_confirmation_email
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_confirm_email_marks_user_verified(identity_service, user_repository, token_manager):
    code = token_manager.generate_confirmation_code("a@x.com")
    user = create_fake_user(id=1, email="a@x.com", confirmation_code=code)
    confirmed = create_fake_user(id=1, email="a@x.com", confirmation_code=code, is_email_verified=True)
    user_repository.get_by_confirmation_code.return_value = user
    user_repository.confirm.return_value = confirmed

    result = await identity_service.confirm_email(code)

    assert result.is_email_verified is True
    user_repository.confirm.assert_awaited_once_with(code)


@pytest.mark.asyncio
async def test_confirm_email_unknown_code(identity_service, user_repository):
    user_repository.get_by_confirmation_code.return_value = None

    with pytest.raises(UserNotFoundError) as exc_info:
        await identity_service.confirm_email("unknown")
    assert exc_info.value.kind is ErrorKind.NOT_FOUND


@pytest.mark.asyncio
async def test_confirm_email_twice_is_already_verified(identity_service, user_repository, token_manager):
    code = token_manager.generate_confirmation_code("a@x.com")
    user_repository.get_by_confirmation_code.return_value = create_fake_user(
        email="a@x.com", confirmation_code=code, is_email_verified=True
    )

    with pytest.raises(AlreadyVerifiedError):
        await identity_service.confirm_email(code)
    user_repository.confirm.assert_not_awaited()


@pytest.mark.asyncio
async def test_confirm_email_rejects_code_signed_for_another_email(
    identity_service, user_repository, token_manager
):
    code = token_manager.generate_confirmation_code("someone-else@x.com")
    user_repository.get_by_confirmation_code.return_value = create_fake_user(
        email="a@x.com", confirmation_code=code
    )

    with pytest.raises(UserNotFoundError):
        await identity_service.confirm_email(code)
    user_repository.confirm.assert_not_awaited()


@pytest.mark.asyncio
async def test_confirm_email_lookup_failure(identity_service, user_repository):
    user_repository.get_by_confirmation_code.side_effect = RuntimeError("boom")

    with pytest.raises(RepositoryFailureError) as exc_info:
        await identity_service.confirm_email("code")
    assert exc_info.value.code == "get_user_by_confirmation_code_failure"


@pytest.mark.asyncio
async def test_confirm_email_update_failure(identity_service, user_repository, token_manager):
    code = token_manager.generate_confirmation_code("a@x.com")
    user_repository.get_by_confirmation_code.return_value = create_fake_user(
        email="a@x.com", confirmation_code=code
    )
    user_repository.confirm.side_effect = RuntimeError("boom")

    with pytest.raises(RepositoryFailureError) as exc_info:
        await identity_service.confirm_email(code)
    assert exc_info.value.code == "confirm_user_failure"


@pytest.mark.asyncio
async def test_resend_confirmation_email_reuses_stored_code(identity_service, user_repository, notifier):
    user = create_fake_user(email="a@x.com", username="alice", confirmation_code="stored-code")
    user_repository.get_by_email.return_value = user

    result = await identity_service.resend_confirmation_email("a@x.com")

    assert result is user
    notifier.send_confirmation_email.assert_awaited_once_with("alice", "a@x.com", "stored-code", "en")


@pytest.mark.asyncio
async def test_resend_confirmation_email_for_verified_user(identity_service, verified_user, notifier):
    with pytest.raises(AlreadyVerifiedError):
        await identity_service.resend_confirmation_email("a@x.com")
    notifier.send_confirmation_email.assert_not_awaited()


@pytest.mark.asyncio
async def test_resend_confirmation_email_delivery_failure(identity_service, user_repository, notifier):
    user_repository.get_by_email.return_value = create_fake_user(email="a@x.com")
    notifier.send_confirmation_email.side_effect = RuntimeError("SMTP down")

    with pytest.raises(RepositoryFailureError) as exc_info:
        await identity_service.resend_confirmation_email("a@x.com")
    assert exc_info.value.code == "send_confirmation_email_failure"


# ---------------------------------------------------------------------------
# lookups / authenticate
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_get_user_not_found(identity_service, user_repository):
    user_repository.get_by_email.return_value = None

    with pytest.raises(UserNotFoundError):
        await identity_service.get_user("a@x.com")


@pytest.mark.asyncio
async def test_get_user_by_id_failure(identity_service, user_repository):
    user_repository.get_by_id.side_effect = RuntimeError("boom")

    with pytest.raises(RepositoryFailureError) as exc_info:
        await identity_service.get_user_by_id(1)
    assert exc_info.value.code == "get_user_by_id_failure"


@pytest.mark.asyncio
async def test_authenticate_with_correct_password(identity_service, verified_user):
    assert await identity_service.authenticate("a@x.com", "Password1") is True


@pytest.mark.asyncio
async def test_authenticate_with_wrong_password_returns_false(identity_service, verified_user):
    assert await identity_service.authenticate("a@x.com", "Wrong1234") is False


@pytest.mark.asyncio
async def test_authenticate_unknown_email(identity_service, user_repository):
    user_repository.get_by_email.return_value = None

    with pytest.raises(UserNotFoundError):
        await identity_service.authenticate("nobody@x.com", "Password1")


@pytest.mark.asyncio
async def test_authenticate_unverified_never_checks_password(
    user_repository, token_manager, notifier
):

    hasher = AsyncMock()
    user_repository.get_by_email.return_value = create_fake_user(email="a@x.com", is_email_verified=False)
    service = IdentityService(user_repository, token_manager, hasher, notifier, TEST_RESET_URI)

    with pytest.raises(NotVerifiedError):
        await service.authenticate("a@x.com", "Password1")
    hasher.verify.assert_not_awaited()


@pytest.mark.asyncio
async def test_authenticate_lookup_failure(identity_service, user_repository):
    user_repository.get_by_email.side_effect = RuntimeError("boom")

    with pytest.raises(RepositoryFailureError) as exc_info:
        await identity_service.authenticate("a@x.com", "Password1")
    assert exc_info.value.code == "get_user_by_email_failure"


# ---------------------------------------------------------------------------
# change_password
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_change_password_identical_touches_nothing(identity_service, user_repository):
    with pytest.raises(IdenticalPasswordError):
        await identity_service.change_password(1, "Password1", "Password1")
    user_repository.get_by_id.assert_not_awaited()


@pytest.mark.asyncio
async def test_change_password_invalid_new_password(identity_service, user_repository):
    with pytest.raises(ValidationFailureError) as exc_info:
        await identity_service.change_password(1, "Password1", "short")

    assert exc_info.value.code == "password_too_short"
    user_repository.get_by_id.assert_not_awaited()


@pytest.mark.asyncio
async def test_change_password_unknown_user(identity_service, user_repository):
    user_repository.get_by_id.return_value = None

    with pytest.raises(UserNotFoundError):
        await identity_service.change_password(1, "Password1", "NewPass2")


@pytest.mark.asyncio
async def test_change_password_wrong_old_password(identity_service, verified_user, user_repository):
    with pytest.raises(PasswordMismatchError):
        await identity_service.change_password(1, "WrongPass9", "NewPass2")
    user_repository.update.assert_not_awaited()


@pytest.mark.asyncio
async def test_change_password_stores_new_hash(
    identity_service, verified_user, user_repository, credential_hasher
):
    user_repository.update.return_value = verified_user

    await identity_service.change_password(1, "Password1", "NewPass2")

    user_id, email, username, new_hash = user_repository.update.await_args.args
    assert (user_id, email, username) == (1, "a@x.com", "alice")
    assert await credential_hasher.verify("NewPass2", new_hash) is True


@pytest.mark.asyncio
async def test_change_password_update_failure(identity_service, verified_user, user_repository):
    user_repository.update.side_effect = LookupError("gone")

    with pytest.raises(RepositoryFailureError) as exc_info:
        await identity_service.change_password(1, "Password1", "NewPass2")
    assert exc_info.value.code == "update_user_failure"


# ---------------------------------------------------------------------------
# delete_account
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_delete_account_delegates_to_repository(identity_service, user_repository):
    await identity_service.delete_account(5)
    user_repository.delete.assert_awaited_once_with(5)
    user_repository.get_by_id.assert_not_awaited()


@pytest.mark.asyncio
async def test_delete_account_failure(identity_service, user_repository):
    user_repository.delete.side_effect = LookupError("No user with id 5")

    with pytest.raises(RepositoryFailureError) as exc_info:
        await identity_service.delete_account(5)
    assert exc_info.value.code == "delete_user_failure"


# ---------------------------------------------------------------------------
# request_password_reset / reset_password
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_request_password_reset_sends_link(
    identity_service, verified_user, token_repository, notifier
):
    token = create_fake_token(user_id=1, token="abc123")
    token_repository.create.return_value = token

    result = await identity_service.request_password_reset("a@x.com")

    assert result.user is verified_user
    assert result.token is token
    notifier.send_reset_email.assert_awaited_once_with(
        "alice", "a@x.com", f"{TEST_RESET_URI}/1/abc123", "en"
    )


@pytest.mark.asyncio
async def test_request_password_reset_reuses_outstanding_token(
    identity_service, verified_user, token_repository
):
    token_repository.get_by_user_id.return_value = create_fake_token(user_id=1, token="abc123")

    first = await identity_service.request_password_reset("a@x.com")
    second = await identity_service.request_password_reset("a@x.com")

    assert first.token.token == second.token.token == "abc123"
    token_repository.create.assert_not_awaited()


@pytest.mark.asyncio
async def test_request_password_reset_unknown_email(identity_service, user_repository, token_repository):
    user_repository.get_by_email.return_value = None

    with pytest.raises(UserNotFoundError):
        await identity_service.request_password_reset("nobody@x.com")
    token_repository.create.assert_not_awaited()


@pytest.mark.asyncio
async def test_request_password_reset_no_token_issued(identity_service, verified_user, token_repository):
    token_repository.create.return_value = None

    with pytest.raises(TokenNotFoundError):
        await identity_service.request_password_reset("a@x.com")


@pytest.mark.asyncio
async def test_request_password_reset_email_failure(
    identity_service, verified_user, token_repository, notifier
):
    token_repository.create.return_value = create_fake_token(user_id=1)
    notifier.send_reset_email.side_effect = RuntimeError("SMTP down")

    with pytest.raises(RepositoryFailureError) as exc_info:
        await identity_service.request_password_reset("a@x.com")
    assert exc_info.value.code == "send_reset_email_failure"


@pytest.mark.asyncio
async def test_reset_password_updates_and_revokes(
    identity_service, verified_user, user_repository, token_repository, credential_hasher
):
    token_repository.get_by_user_id_and_value.return_value = create_fake_token(user_id=1, token="abc123")
    user_repository.update.return_value = verified_user

    await identity_service.reset_password(1, "abc123", "NewPass2")

    new_hash = user_repository.update.await_args.args[3]
    assert await credential_hasher.verify("NewPass2", new_hash) is True
    token_repository.delete.assert_awaited_once_with(1)


@pytest.mark.asyncio
async def test_reset_password_wrong_token_is_token_not_found(
    identity_service, verified_user, token_repository, user_repository
):
    token_repository.get_by_user_id_and_value.return_value = None

    with pytest.raises(TokenNotFoundError) as exc_info:
        await identity_service.reset_password(1, "wrong", "NewPass2")

    assert exc_info.value.kind is ErrorKind.NOT_FOUND
    user_repository.update.assert_not_awaited()


@pytest.mark.asyncio
async def test_reset_password_checks_token_before_password(
    identity_service, verified_user, token_repository
):
    token_repository.get_by_user_id_and_value.return_value = None

    with pytest.raises(TokenNotFoundError):
        await identity_service.reset_password(1, "wrong", "short")


@pytest.mark.asyncio
async def test_reset_password_invalid_new_password(
    identity_service, verified_user, token_repository, user_repository
):
    token_repository.get_by_user_id_and_value.return_value = create_fake_token(user_id=1, token="abc123")

    with pytest.raises(ValidationFailureError):
        await identity_service.reset_password(1, "abc123", "short")
    user_repository.update.assert_not_awaited()
    token_repository.delete.assert_not_awaited()


@pytest.mark.asyncio
async def test_reset_password_unknown_user(identity_service, user_repository, token_repository):
    user_repository.get_by_id.return_value = None

    with pytest.raises(UserNotFoundError):
        await identity_service.reset_password(1, "abc123", "NewPass2")
    token_repository.get_by_user_id_and_value.assert_not_awaited()


@pytest.mark.asyncio
async def test_reset_password_update_failure_keeps_token(
    identity_service, verified_user, user_repository, token_repository
):
    token_repository.get_by_user_id_and_value.return_value = create_fake_token(user_id=1, token="abc123")
    user_repository.update.side_effect = RuntimeError("boom")

    with pytest.raises(RepositoryFailureError) as exc_info:
        await identity_service.reset_password(1, "abc123", "NewPass2")

    assert exc_info.value.code == "update_user_failure"
    token_repository.delete.assert_not_awaited()


@pytest.mark.asyncio
async def test_reset_password_revoke_failure_is_reported_separately(
    identity_service, verified_user, user_repository, token_repository
):
    token_repository.get_by_user_id_and_value.return_value = create_fake_token(user_id=1, token="abc123")
    user_repository.update.return_value = verified_user
    token_repository.delete.side_effect = RuntimeError("boom")

    with pytest.raises(RepositoryFailureError) as exc_info:
        await identity_service.reset_password(1, "abc123", "NewPass2")

    assert exc_info.value.code == "delete_token_failure"
    user_repository.update.assert_awaited_once()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "password, code",
    [
        ("Password1\x00", "password_invalid_character"),
        ("A1" * 36 + "real-suffix", "password_too_long"),
    ],
)
async def test_register_rejects_password_bcrypt_cannot_hash(identity_service, user_repository, password, code):
    with pytest.raises(ValidationFailureError) as exc_info:
        await identity_service.register("a@x.com", "alice", password)

    assert exc_info.value.code == code
    user_repository.create.assert_not_awaited()


@pytest.mark.asyncio
async def test_authenticate_wrong_password_sharing_72_byte_prefix(
    identity_service, user_repository, credential_hasher
):
    user_repository.get_by_email.return_value = create_fake_user(
        email="a@x.com",
        password_hash=await credential_hasher.hash("A1" * 36),
        is_email_verified=True,
    )

    assert await identity_service.authenticate("a@x.com", "A1" * 36) is True
    assert await identity_service.authenticate("a@x.com", "A1" * 36 + "totally-different") is False


@pytest.mark.asyncio
async def test_authenticate_with_nul_in_password_returns_false(identity_service, verified_user):
    assert await identity_service.authenticate("a@x.com", "wrong\x00") is False


@pytest.mark.asyncio
async def test_change_password_rejects_new_password_over_72_bytes(identity_service, verified_user, user_repository):
    with pytest.raises(ValidationFailureError) as exc_info:
        await identity_service.change_password(1, "Password1", "Password1" + "x" * 70)

    assert exc_info.value.code == "password_too_long"
    user_repository.update.assert_not_awaited()
