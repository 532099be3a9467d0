"""Webmail client — drives the browser-only webmail behind a typed async API."""

import json
import logging
from collections.abc import AsyncIterator, Callable, Mapping, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Any

import httpx

from mailbridge.config import Settings
from mailbridge.webmail.batch import group_by_mailbox, join_uids
from mailbridge.webmail.classify import (
    LOGIN_REQUIRED,
    classify_action,
    classify_download,
    classify_listing,
    classify_login,
)
from mailbridge.webmail.csrf import fetch_csrf_token
from mailbridge.webmail.errors import ErrorKind, WebmailError
from mailbridge.webmail.mapper import from_email_message, to_payload
from mailbridge.webmail.session import Session
from mailbridge.webmail.types import Credentials, MessageRef, OutgoingMessage

logger = logging.getLogger(__name__)

_SEND_EXCEPTIONS: dict[str, ErrorKind] = {LOGIN_REQUIRED: ErrorKind.LOGIN_REQUIRED}

# Form builder for one mailbox of a batched action: (mailbox, "1-2-3") → form
_FormBuilder = Callable[[str, str], dict[str, str]]


@dataclass(frozen=True)
class WebmailEndpoints:
    """URLs of the pages and XHR endpoints the client talks to."""

    root: str
    login_page: str
    login_url: str
    webmail_page: str
    requests_url: str
    send_url: str

    @classmethod
    def from_base_url(cls, base_url: str) -> "WebmailEndpoints":
        root = base_url.rstrip("/")
        return cls(
            root=root,
            login_page=f"{root}/login",
            login_url=f"{root}/requests/guest",
            webmail_page=f"{root}/webmail/",
            requests_url=f"{root}/requests/webmail",
            send_url=f"{root}/requests/webmail/send-message",
        )


class WebmailClient:
    """Thin async wrapper around the webmail's browser endpoints.

    Owns one Session (cookie jar + user agent) for the lifetime of one
    protocol connection.  Every state-mutating call fetches a fresh CSRF
    token and spends it while holding the session gate exclusively, so
    concurrent calls on one client queue instead of stealing each other's
    token.  Use the `webmail_client()` context manager to construct and tear
    down correctly.
    """

    def __init__(self, session: Session, endpoints: WebmailEndpoints) -> None:
        self._session = session
        self._endpoints = endpoints

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> "WebmailClient":
        """Build a client with a fresh session and a random browser user agent."""
        session = Session.open(timeout=settings.timeout_seconds, http_client=http_client)
        return cls(session, WebmailEndpoints.from_base_url(settings.base_url))

    @property
    def user_agent(self) -> str:
        return self._session.user_agent

    async def aclose(self) -> None:
        await self._session.aclose()

    # ── Public API ─────────────────────────────────────────────────────────────

    async def login(self, credentials: Credentials) -> None:
        """Log in; the session cookies set by the server are kept for later calls.

        Raises AuthentificationFailedError on bad credentials and LoginError
        on any other failure.
        """
        async with self._session.gate.exclusive():
            token = await self._csrf_token(self._endpoints.login_page)
            headers = self._mutation_headers(token, referer=self._endpoints.login_page)
            headers["X-Requested-With"] = "XMLHttpRequest"
            data = {
                "domain": credentials.domain,
                "name": credentials.username,
                "password": credentials.password,
                "action": "login",
            }
            logger.debug("POST %s action=login", self._endpoints.login_url)
            response = await self._session.http.post(
                self._endpoints.login_url, data=data, headers=headers
            )
            classify_login(response).unwrap()
        logger.info("Logged in as %s@%s", credentials.username, credentials.domain)

    async def list_messages(
        self, mailbox: str, range_start: int, range_end: int
    ) -> list[dict[str, Any]]:
        """Return the server's descriptors for messages in [range_start, range_end].

        Ordered least-recent first, exactly as the server sends them.
        """
        if not _is_int(range_start) or not _is_int(range_end):
            raise WebmailError("Invalid range")
        async with self._session.gate.shared():
            token = await self._csrf_token(self._endpoints.webmail_page)
            params = {
                "range": f"{range_start}-{range_end}",
                "sort": "date",
                "order": "1",  # 0 = most recent first; 1 = least recent first
                "selected": "",
                "action": "maillist",
                "mailbox": mailbox,
            }
            headers = {
                "User-Agent": self.user_agent,
                "X-CSRFToken": token,
                "Referer": self._endpoints.webmail_page,
            }
            logger.debug("GET %s action=maillist mailbox=%s", self._endpoints.requests_url, mailbox)
            response = await self._session.http.get(
                self._endpoints.requests_url, params=params, headers=headers
            )
        messages: list[dict[str, Any]] = classify_listing(response).unwrap()
        logger.debug("Listed %d message(s) in %s", len(messages), mailbox)
        return messages

    async def fetch_message(self, ref: MessageRef) -> str:
        """Return the raw RFC 5322 source of one message."""
        params = {"mailbox": ref.mailbox, "uid": ref.uid, "action": "downloadmessage"}
        headers = {"User-Agent": self.user_agent, "Referer": self._endpoints.webmail_page}
        async with self._session.gate.shared():
            logger.debug(
                "GET %s action=downloadmessage mailbox=%s uid=%d",
                self._endpoints.requests_url,
                ref.mailbox,
                ref.uid,
            )
            response = await self._session.http.get(
                self._endpoints.requests_url, params=params, headers=headers
            )
        source: str = classify_download(response).unwrap()
        return source

    async def mark_as_seen(self, refs: Sequence[MessageRef] | None) -> int:
        """Mark messages as seen, one request per mailbox.  Returns len(refs)."""
        return await self._apply_batched(
            refs,
            lambda mailbox, uids: {"mailbox": mailbox, "uids": uids, "action": "markasseen"},
        )

    async def trash_messages(self, refs: Sequence[MessageRef] | None) -> int:
        """Move messages to Trash, one request per mailbox.  Returns len(refs)."""
        return await self._apply_batched(
            refs,
            lambda mailbox, uids: {
                "mailbox": mailbox,
                "dest": "Trash",
                "uids": uids,
                "action": "move",
            },
        )

    async def send(self, message: OutgoingMessage | EmailMessage) -> None:
        """Send a message through the webmail.

        Accepts a ready OutgoingMessage or a parsed MIME message.  Messages
        with attachments are refused before any request goes out.  Raises
        LoginRequiredError if the server says the session has expired.
        """
        if isinstance(message, EmailMessage):
            message = from_email_message(message)
        data = {
            "message": json.dumps(to_payload(message)),
            "action": "sendmessage",
        }
        async with self._session.gate.exclusive():
            await self._post_action(self._endpoints.send_url, data, _SEND_EXCEPTIONS)
        logger.info("Sent message %r to %d recipient(s)", message.subject, len(message.to))

    # ── Internal helpers ───────────────────────────────────────────────────────

    async def _csrf_token(self, page_url: str) -> str:
        return await fetch_csrf_token(self._session.http, page_url, self.user_agent)

    def _mutation_headers(self, token: str, referer: str) -> dict[str, str]:
        return {
            "Origin": self._endpoints.root,
            "User-Agent": self.user_agent,
            "X-CSRFToken": token,
            "Referer": referer,
        }

    async def _post_action(
        self,
        url: str,
        data: dict[str, str],
        exception_kinds: Mapping[str, ErrorKind] | None = None,
    ) -> None:
        """Fetch a fresh token, POST one form, and require the success marker.

        The caller must hold the session gate exclusively.
        """
        token = await self._csrf_token(self._endpoints.webmail_page)
        headers = self._mutation_headers(token, referer=self._endpoints.webmail_page)
        logger.debug("POST %s action=%s", url, data.get("action"))
        response = await self._session.http.post(url, data=data, headers=headers)
        classify_action(response, exception_kinds).unwrap()

    async def _apply_batched(
        self, refs: Sequence[MessageRef] | None, build_form: _FormBuilder
    ) -> int:
        """Run one mutating request per mailbox, sequentially.

        The first failure propagates; mailboxes already processed stay changed
        on the server.
        """
        if not refs:
            return 0
        boxes = group_by_mailbox(refs)
        async with self._session.gate.exclusive():
            for mailbox, uids in boxes.items():
                await self._post_action(
                    self._endpoints.requests_url, build_form(mailbox, join_uids(uids))
                )
        return len(refs)


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@asynccontextmanager
async def webmail_client(
    settings: Settings | None = None,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> AsyncIterator[WebmailClient]:
    """Async context manager that yields a WebmailClient and closes it on exit.

    The client is not logged in yet; call ``login()`` first.

    Example::

        async with webmail_client() as client:
            await client.login(Credentials("example.org", "alice", "s3cret"))
            messages = await client.list_messages("INBOX", 1, 100)
    """
    client = WebmailClient.from_settings(settings or Settings.from_env(), http_client=http_client)
    try:
        yield client
    finally:
        await client.aclose()
