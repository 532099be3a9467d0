"""Message mapper — MIME message → OutgoingMessage → send-message JSON payload."""

from email import policy
from email.headerregistry import Address
from email.message import EmailMessage
from email.parser import BytesParser
from typing import Any

from mailbridge.webmail.types import BodyType, OutgoingMessage, Recipient


def parse_message(data: bytes) -> EmailMessage:
    """Parse raw RFC 5322 bytes into an EmailMessage with typed headers."""
    message: EmailMessage = BytesParser(policy=policy.default).parsebytes(data)  # type: ignore[assignment]
    return message


def header_addresses(message: EmailMessage, name: str) -> tuple[Address, ...]:
    """Return the addresses of an address header, or () when it is absent."""
    header = message.get(name)
    if header is None:
        return ()
    return tuple(header.addresses)


def _recipients(message: EmailMessage, name: str) -> tuple[Recipient, ...]:
    return tuple(
        Recipient(email=addr.addr_spec, name=addr.display_name or None)
        for addr in header_addresses(message, name)
    )


def from_email_message(message: EmailMessage) -> OutgoingMessage:
    """Build an OutgoingMessage from a parsed MIME message.

    An HTML alternative, when present, wins over the plain-text body.
    Raises UnsupportedMessageError if the message carries attachments.
    """
    has_attachments = any(True for _ in message.iter_attachments())

    html_part = message.get_body(preferencelist=("html",))
    if html_part is not None:
        body_type = BodyType.HTML
        body = html_part.get_content()
    else:
        plain_part = message.get_body(preferencelist=("plain",))
        body_type = BodyType.PLAIN
        body = plain_part.get_content() if plain_part is not None else ""

    return OutgoingMessage(
        to=_recipients(message, "to"),
        cc=_recipients(message, "cc"),
        bcc=_recipients(message, "bcc"),
        subject=str(message.get("subject", "")),
        body=body,
        body_type=body_type,
        has_attachments=has_attachments,
    )


def _address(recipient: Recipient) -> dict[str, str | None]:
    return {"email": recipient.email, "name": recipient.name}


def to_payload(message: OutgoingMessage) -> dict[str, Any]:
    """Map an OutgoingMessage to the object the send-message endpoint expects."""
    return {
        "to": [_address(r) for r in message.to],
        "cc": [_address(r) for r in message.cc],
        "bcc": [_address(r) for r in message.bcc],
        "subject": message.subject,
        "type": message.body_type.value,
        "message_string": message.body,
        "joinedfiles": [],
    }
