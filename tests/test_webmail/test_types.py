"""Tests for webmail value types and the ApiResult union."""

import dataclasses

import pytest

from mailbridge.webmail.errors import (
    ERROR_TYPES,
    AuthentificationFailedError,
    ErrorKind,
    LoginError,
    LoginRequiredError,
    UnsupportedMessageError,
    WebmailError,
)
from mailbridge.webmail.types import (
    BodyType,
    Credentials,
    Failure,
    MessageRef,
    OutgoingMessage,
    Recipient,
    Success,
)


class TestMessageRef:
    def test_is_value_typed(self) -> None:
        assert MessageRef("INBOX", 3) == MessageRef("INBOX", 3)
        assert hash(MessageRef("INBOX", 3)) == hash(MessageRef("INBOX", 3))

    def test_is_immutable(self) -> None:
        ref = MessageRef("INBOX", 3)
        with pytest.raises(dataclasses.FrozenInstanceError):
            ref.uid = 4  # type: ignore[misc]

    def test_negative_uid_rejected(self) -> None:
        with pytest.raises(ValueError):
            MessageRef("INBOX", -1)


class TestCredentials:
    def test_password_not_in_repr(self) -> None:
        creds = Credentials("example.org", "alice", "hunter2")
        assert "hunter2" not in repr(creds)
        assert "alice" in repr(creds)


class TestRecipient:
    def test_empty_name_normalised_to_none(self) -> None:
        assert Recipient("a@b.c", "").name is None

    def test_name_kept(self) -> None:
        assert Recipient("a@b.c", "Alice").name == "Alice"


class TestOutgoingMessage:
    def test_defaults(self) -> None:
        msg = OutgoingMessage(to=(Recipient("a@b.c"),), subject="s", body="b")
        assert msg.cc == ()
        assert msg.bcc == ()
        assert msg.body_type is BodyType.PLAIN

    def test_attachments_rejected_at_construction(self) -> None:
        with pytest.raises(UnsupportedMessageError, match="Attachments"):
            OutgoingMessage(to=(), subject="s", body="b", has_attachments=True)

    def test_body_type_values_match_server(self) -> None:
        assert BodyType.PLAIN.value == "text/plain"
        assert BodyType.HTML.value == "text/html"


class TestApiResult:
    def test_success_unwraps_payload(self) -> None:
        assert Success([1, 2]).unwrap() == [1, 2]
        assert Success(None).ok is True

    @pytest.mark.parametrize(
        ("kind", "exc_type"),
        [
            (ErrorKind.GENERIC, WebmailError),
            (ErrorKind.LOGIN, LoginError),
            (ErrorKind.AUTHENTIFICATION_FAILED, AuthentificationFailedError),
            (ErrorKind.LOGIN_REQUIRED, LoginRequiredError),
        ],
    )
    def test_failure_unwrap_raises_matching_error(
        self, kind: ErrorKind, exc_type: type[Exception]
    ) -> None:
        failure = Failure(kind, "detail text")
        assert failure.ok is False
        with pytest.raises(exc_type, match="detail text") as info:
            failure.unwrap()
        assert type(info.value) is exc_type

    def test_every_kind_has_an_exception(self) -> None:
        assert set(ERROR_TYPES) == set(ErrorKind)

    def test_authentification_failed_is_a_login_error(self) -> None:
        assert issubclass(AuthentificationFailedError, LoginError)
        assert issubclass(LoginRequiredError, WebmailError)
