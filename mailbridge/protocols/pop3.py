"""POP3 backend — the hooks a POP3 server library calls, mapped onto the webmail.

Only INBOX is exposed.  The UPDATE-state hook is fire-and-forget: it schedules
the mark-seen/trash work as a background task and returns at once, so the
protocol acknowledges QUIT before the webmail has answered.  Failures of that
task are only visible in the logs.
"""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from functools import partial
from typing import Any

from mailbridge.config import Settings
from mailbridge.protocols.auth import ClientFactory, open_authenticated_client
from mailbridge.webmail.client import WebmailClient
from mailbridge.webmail.errors import WebmailError
from mailbridge.webmail.types import MessageRef

logger = logging.getLogger(__name__)

INBOX = "INBOX"
MAX_MESSAGES = 100


@dataclass
class Pop3Session:
    """One authenticated POP3 connection."""

    user_name: str
    client: WebmailClient
    pending: set[asyncio.Task[None]] = field(default_factory=set)


@dataclass(frozen=True)
class ListedMessage:
    """A maildrop entry as the POP3 layer sees it."""

    uid: int
    mailbox: str
    size: int
    seen: bool

    @property
    def ref(self) -> MessageRef:
        return MessageRef(mailbox=self.mailbox, uid=self.uid)


@dataclass(frozen=True)
class MailboxListing:
    messages: list[ListedMessage]
    count: int
    size: int


class Pop3Backend:
    """Maps POP3 session events onto WebmailClient calls.

    The maillist endpoint reports no message sizes, so every size is 0.
    """

    def __init__(self, client_factory: ClientFactory, max_messages: int = MAX_MESSAGES) -> None:
        self._client_factory = client_factory
        self._max_messages = max_messages

    @classmethod
    def from_settings(cls, settings: Settings) -> "Pop3Backend":
        return cls(partial(WebmailClient.from_settings, settings), settings.max_messages)

    async def authenticate(self, username: str, password: str) -> Pop3Session:
        """Log in as ``user@domain``; raises InvalidAddressError or a LoginError."""
        client = await open_authenticated_client(username, password, self._client_factory)
        logger.info("POP3 [%s] authenticated", username)
        return Pop3Session(user_name=username, client=client)

    async def list_messages(self, session: Pop3Session) -> MailboxListing:
        descriptors = await session.client.list_messages(INBOX, 1, self._max_messages)
        messages = [_listed(d) for d in descriptors]
        return MailboxListing(messages=messages, count=len(messages), size=0)

    async def fetch_message(self, session: Pop3Session, ref: MessageRef) -> bytes:
        """Return the raw message source for RETR/TOP."""
        source = await session.client.fetch_message(ref)
        return source.encode("utf-8")

    def update(
        self,
        session: Pop3Session,
        seen: Sequence[MessageRef] | None,
        deleted: Sequence[MessageRef] | None,
    ) -> asyncio.Task[None]:
        """Schedule mark-seen then trash in the background and return immediately.

        The returned task never raises; errors are logged with the session's
        user name.  Must be called from a running event loop.
        """
        task = asyncio.create_task(
            self._apply_update(session, seen, deleted),
            name=f"pop3-update-{session.user_name}",
        )
        session.pending.add(task)
        task.add_done_callback(session.pending.discard)
        return task

    async def close(self, session: Pop3Session) -> None:
        """End the connection once any in-flight update has finished."""
        if session.pending:
            await asyncio.gather(*session.pending, return_exceptions=True)
        await session.client.aclose()
        logger.info("POP3 [%s] disconnected", session.user_name)

    async def _apply_update(
        self,
        session: Pop3Session,
        seen: Sequence[MessageRef] | None,
        deleted: Sequence[MessageRef] | None,
    ) -> None:
        try:
            seen_count = await session.client.mark_as_seen(seen)
            logger.info("POP3 [%s] Marked %d messages as seen", session.user_name, seen_count)
            deleted_count = await session.client.trash_messages(deleted)
            logger.info("POP3 [%s] Deleted %d messages", session.user_name, deleted_count)
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "POP3 [%s] update failed (%d seen, %d deleted requested): %s",
                session.user_name,
                len(seen or ()),
                len(deleted or ()),
                exc,
                exc_info=True,
            )


def _listed(descriptor: dict[str, Any]) -> ListedMessage:
    try:
        uid = int(descriptor["uid"])
    except (KeyError, TypeError, ValueError) as exc:
        raise WebmailError("Unexpected response") from exc
    return ListedMessage(
        uid=uid,
        mailbox=INBOX,
        size=0,
        seen=bool(descriptor.get("seen", False)),
    )
