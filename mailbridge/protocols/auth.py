"""Login plumbing shared by the POP3 and SMTP backends."""

import logging
from collections.abc import Callable

from mailbridge.protocols.errors import InvalidAddressError
from mailbridge.webmail.client import WebmailClient
from mailbridge.webmail.types import Credentials

logger = logging.getLogger(__name__)

#: Builds a fresh, not-yet-logged-in client (new cookie jar, random user agent).
#: Called once per protocol connection so sessions are never shared.
ClientFactory = Callable[[], WebmailClient]


def credentials_from_login(username: str, password: str) -> Credentials:
    """Split a protocol login ``user@domain`` into webmail Credentials."""
    parts = username.split("@")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise InvalidAddressError("Invalid email address")
    return Credentials(domain=parts[1], username=parts[0], password=password)


async def open_authenticated_client(
    username: str, password: str, client_factory: ClientFactory
) -> WebmailClient:
    """Return a logged-in client for username, or raise and leave nothing open."""
    credentials = credentials_from_login(username, password)
    client = client_factory()
    try:
        await client.login(credentials)
    except BaseException:
        await client.aclose()
        raise
    return client
