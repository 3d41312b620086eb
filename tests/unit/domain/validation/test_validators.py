import pytest

from user_service.domain.validation import (
    ValidationReason,
    valid_email,
    valid_password,
    valid_username,
)


@pytest.mark.parametrize(
    "email",
    ["a@x.com", "john.doe+tag@mail.example.org", "UPPER_case%1@sub-domain.io"],
)
def test_valid_email_accepts_plausible_addresses(email):
    result = valid_email(email)
    assert result.valid is True
    assert result.reason is None
    assert bool(result) is True


@pytest.mark.parametrize(
    "email",
    ["", "plainaddress", "a@x", "a@x.c", "a b@x.com", "@x.com", "a@@x.com"],
)
def test_valid_email_rejects_malformed_addresses(email):
    result = valid_email(email)
    assert result.valid is False
    assert result.reason is ValidationReason.EMAIL_INVALID


def test_valid_email_rejects_addresses_over_254_characters():
    email = "a" * 245 + "@example.com"
    assert len(email) > 254
    assert valid_email(email).reason is ValidationReason.EMAIL_INVALID


def test_valid_email_rejects_non_string():
    assert valid_email(None).reason is ValidationReason.EMAIL_INVALID


@pytest.mark.parametrize("username", ["alice", "Bob", "a_1", "x" * 30])
def test_valid_username_accepts_good_names(username):
    assert valid_username(username).valid is True


@pytest.mark.parametrize("username", ["al", "1alice", "_alice", "alice!", "x" * 31, "", "al ice"])
def test_valid_username_rejects_bad_names(username):
    result = valid_username(username)
    assert result.valid is False
    assert result.reason is ValidationReason.USERNAME_INVALID


def test_valid_password_accepts_letters_and_digits():
    assert valid_password("Password1").valid is True
    assert valid_password("NewPass2").valid is True


@pytest.mark.parametrize(
    "password, reason",
    [
        ("short", ValidationReason.PASSWORD_TOO_SHORT),
        ("a1" * 65, ValidationReason.PASSWORD_TOO_LONG),
        ("12345678", ValidationReason.PASSWORD_MISSING_LETTER),
        ("Password", ValidationReason.PASSWORD_MISSING_DIGIT),
        (12345678, ValidationReason.PASSWORD_TOO_SHORT),
    ],
)
def test_valid_password_reports_first_broken_rule(password, reason):
    result = valid_password(password)
    assert result.valid is False
    assert result.reason is reason


def test_password_length_bounds_are_inclusive():
    assert valid_password("abcdefg1").valid is True
    assert valid_password("a1" * 36).valid is True


def test_password_byte_limit_counts_utf8_bytes():
    # "\u00e9" is two bytes in UTF-8.
    assert valid_password("\u00e9" * 35 + "a1").valid is True
    result = valid_password("\u00e9" * 36 + "a1")
    assert result.valid is False
    assert result.reason is ValidationReason.PASSWORD_TOO_LONG


def test_password_over_72_bytes_is_too_long():
    result = valid_password("A1" * 36 + "real-suffix")
    assert result.reason is ValidationReason.PASSWORD_TOO_LONG


@pytest.mark.parametrize("password", ["Password1\x00", "Pass\x00word1", "Password1\ud800"])
def test_password_with_unhashable_character_is_rejected(password):
    result = valid_password(password)
    assert result.valid is False
    assert result.reason is ValidationReason.PASSWORD_INVALID_CHARACTER


def test_password_digit_must_be_ascii():
    result = valid_password("Password\u0661")
    assert result.reason is ValidationReason.PASSWORD_MISSING_DIGIT


def test_reason_values_are_message_keys():
    assert ValidationReason.EMAIL_INVALID.value == "email_validation_fail"
    assert ValidationReason.PASSWORD_TOO_SHORT.value == "password_too_short"
