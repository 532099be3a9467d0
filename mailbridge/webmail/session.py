"""Per-connection webmail session: cookie jar, user agent, and access gate."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

import httpx

from mailbridge.webmail.user_agents import random_user_agent

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


class SessionGate:
    """Reader/writer gate serialising access to one session's cookie jar.

    Mutating calls (fetch a CSRF token, then spend it) hold the gate
    exclusively, queued in arrival order.  Read-only calls share it with each
    other but never overlap a mutation.  A waiting writer blocks new readers.
    """

    def __init__(self) -> None:
        self._cond = asyncio.Condition()
        self._write_lock = asyncio.Lock()
        self._readers = 0
        self._writing = False

    @asynccontextmanager
    async def shared(self) -> AsyncIterator[None]:
        async with self._cond:
            await self._cond.wait_for(lambda: not self._writing)
            self._readers += 1
        try:
            yield
        finally:
            async with self._cond:
                self._readers -= 1
                self._cond.notify_all()

    @asynccontextmanager
    async def exclusive(self) -> AsyncIterator[None]:
        async with self._write_lock:
            async with self._cond:
                self._writing = True
                try:
                    await self._cond.wait_for(lambda: self._readers == 0)
                except BaseException:
                    self._writing = False
                    self._cond.notify_all()
                    raise
            try:
                yield
            finally:
                async with self._cond:
                    self._writing = False
                    self._cond.notify_all()


@dataclass
class Session:
    """Authentication state of one protocol connection.

    Owns an httpx.AsyncClient whose cookie jar carries the webmail session
    cookies.  A Session belongs to exactly one WebmailClient and must never be
    shared between users.  Use Session.open() to create one.
    """

    http: httpx.AsyncClient
    user_agent: str
    gate: SessionGate = field(default_factory=SessionGate)
    owns_http: bool = True

    @classmethod
    def open(
        cls,
        *,
        user_agent: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        http_client: httpx.AsyncClient | None = None,
    ) -> "Session":
        """Create a fresh session with an empty cookie jar.

        An injected http_client is used as-is and left open on aclose().
        """
        agent = user_agent or random_user_agent()
        if http_client is not None:
            return cls(http=http_client, user_agent=agent, owns_http=False)
        return cls(http=httpx.AsyncClient(timeout=timeout), user_agent=agent)

    async def aclose(self) -> None:
        """Drop the session.  Closes the HTTP client only if we created it."""
        if self.owns_http:
            await self.http.aclose()
        logger.debug("Session closed")
