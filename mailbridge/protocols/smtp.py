"""SMTP backend — submission hooks that forward mail through the webmail.

An authenticated user may only send as themselves, and the message headers
must agree exactly with the SMTP envelope (From, then To in order) before
anything is handed to the webmail.
"""

import logging
from dataclasses import dataclass, field
from email.message import EmailMessage
from functools import partial

from mailbridge.config import Settings
from mailbridge.protocols.auth import ClientFactory, open_authenticated_client
from mailbridge.protocols.errors import EnvelopeMismatchError, NotAllowedError
from mailbridge.webmail.client import WebmailClient
from mailbridge.webmail.mapper import header_addresses, parse_message

logger = logging.getLogger(__name__)

AUTH_METHODS: tuple[str, ...] = ("PLAIN",)
DISABLED_COMMANDS: tuple[str, ...] = ("STARTTLS",)


@dataclass
class Envelope:
    """SMTP envelope: MAIL FROM and RCPT TO addresses."""

    mail_from: str
    rcpt_to: list[str] = field(default_factory=list)


@dataclass
class SmtpSession:
    """One SMTP connection; user_name and client are set once authenticated."""

    user_name: str | None = None
    client: WebmailClient | None = None


def validate_envelope(message: EmailMessage, envelope: Envelope) -> None:
    """Raise EnvelopeMismatchError unless headers and envelope agree exactly."""
    senders = header_addresses(message, "from")
    if len(senders) != 1:
        raise EnvelopeMismatchError(f"Unexpected number of 'From' addresses: {len(senders)}")
    if senders[0].addr_spec != envelope.mail_from:
        raise EnvelopeMismatchError("Unexpected email address in 'From'")

    recipients = header_addresses(message, "to")
    if len(recipients) != len(envelope.rcpt_to):
        raise EnvelopeMismatchError(f"Unexpected number of 'To' addresses: {len(recipients)}")
    for header_addr, rcpt in zip(recipients, envelope.rcpt_to):
        if header_addr.addr_spec != rcpt:
            raise EnvelopeMismatchError("Unexpected email address in 'To'")


class SmtpBackend:
    """Maps SMTP session events onto WebmailClient calls."""

    def __init__(self, client_factory: ClientFactory) -> None:
        self._client_factory = client_factory

    @classmethod
    def from_settings(cls, settings: Settings) -> "SmtpBackend":
        return cls(partial(WebmailClient.from_settings, settings))

    async def authenticate(self, session: SmtpSession, username: str, password: str) -> None:
        """AUTH PLAIN: log in as ``user@domain`` and bind the client to session."""
        session.client = await open_authenticated_client(
            username, password, self._client_factory
        )
        session.user_name = username
        logger.info("SMTP [%s] authenticated", username)

    def check_mail_from(self, session: SmtpSession, address: str) -> None:
        """MAIL FROM: only the authenticated user may be the sender."""
        if session.user_name is None or address != session.user_name:
            raise NotAllowedError("Not allowed to send mail")

    async def handle_data(self, session: SmtpSession, envelope: Envelope, data: bytes) -> None:
        """DATA: parse the message, check it against the envelope, and send it."""
        if session.client is None:
            raise NotAllowedError("Not allowed to send mail")
        message = parse_message(data)
        validate_envelope(message, envelope)
        await session.client.send(message)
        logger.info(
            "SMTP [%s] sent message to %d recipient(s)",
            session.user_name,
            len(envelope.rcpt_to),
        )

    async def close(self, session: SmtpSession) -> None:
        if session.user_name is None:
            logger.info("unauthenticated user disconnected")
        else:
            logger.info("%s disconnected", session.user_name)
        if session.client is not None:
            await session.client.aclose()
            session.client = None
