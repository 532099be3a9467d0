"""Data types shared across the webmail client modules."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, NoReturn, TypeVar

from mailbridge.webmail.errors import ERROR_TYPES, ErrorKind, UnsupportedMessageError

T = TypeVar("T")


@dataclass(frozen=True)
class Credentials:
    """Login identity for one webmail account.

    The password is kept out of repr() so a logged Credentials never leaks it.
    """

    domain: str
    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class MessageRef:
    """Identifies one remote message: (mailbox, uid)."""

    mailbox: str
    uid: int

    def __post_init__(self) -> None:
        if self.uid < 0:
            raise ValueError(f"uid must be >= 0, got {self.uid}")


class BodyType(str, Enum):
    """Content type of an outgoing message body, as the server names it."""

    PLAIN = "text/plain"
    HTML = "text/html"


@dataclass(frozen=True)
class Recipient:
    """One address in a To/Cc/Bcc list.  Empty display names become None."""

    email: str
    name: str | None = None

    def __post_init__(self) -> None:
        if self.name == "":
            object.__setattr__(self, "name", None)


@dataclass(frozen=True)
class OutgoingMessage:
    """A message ready to be handed to the send endpoint.

    The webmail send endpoint has no attachment upload, so a message that
    declares attachments is refused here rather than silently truncated.
    """

    to: tuple[Recipient, ...]
    subject: str
    body: str
    body_type: BodyType = BodyType.PLAIN
    cc: tuple[Recipient, ...] = ()
    bcc: tuple[Recipient, ...] = ()
    has_attachments: bool = False

    def __post_init__(self) -> None:
        if self.has_attachments:
            raise UnsupportedMessageError("Attachments not implemented")


# ── Classifier results ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Success(Generic[T]):
    """A response that passed classification, with its useful payload."""

    payload: T

    ok = True

    def unwrap(self) -> T:
        return self.payload


@dataclass(frozen=True)
class Failure:
    """A response that failed classification."""

    kind: ErrorKind
    detail: str

    ok = False

    def error(self) -> Exception:
        """Build the exception matching this failure's kind."""
        return ERROR_TYPES[self.kind](self.detail)

    def unwrap(self) -> NoReturn:
        raise self.error()


ApiResult = Success[Any] | Failure
