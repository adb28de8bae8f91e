"""Unit tests for user-facing error messages"""

from __future__ import annotations

import pytest

from grammarguard.infrastructure.retry import AuthMissingError, ErrorKind, PermissionDeniedError
from grammarguard.utils.error_messages import USER_MESSAGES, needs_credential, user_message


@pytest.mark.parametrize(
    "error, kind",
    [
        (AuthMissingError(), ErrorKind.AUTH_MISSING),
        (PermissionDeniedError(), ErrorKind.PERMISSION_DENIED),
        (Exception("429 Too Many Requests"), ErrorKind.RATE_LIMITED),
        (Exception("503 Service Unavailable"), ErrorKind.SERVICE_UNAVAILABLE),
        (KeyError("segments"), ErrorKind.OTHER),
    ],
)
def test_message_per_kind(error, kind):
    assert user_message(error) == USER_MESSAGES[kind]


def test_every_kind_has_a_message():
    assert set(USER_MESSAGES) == set(ErrorKind)


def test_raw_error_text_is_not_shown():
    secret = "key=AIzaSyDUMMY request body: my private draft"
    assert secret not in user_message(ValueError(secret))


def test_needs_credential():
    assert needs_credential(AuthMissingError())
    assert needs_credential(PermissionDeniedError())
    assert not needs_credential(Exception("503 overloaded"))
