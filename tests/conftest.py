"""Shared pytest fixtures: an in-memory webmail server behind httpx.MockTransport."""

from collections.abc import AsyncIterator
from urllib.parse import parse_qs

import httpx
import pytest

from mailbridge.webmail.classify import SUCCESS_MARKER
from mailbridge.webmail.client import WebmailClient, WebmailEndpoints
from mailbridge.webmail.session import Session

BASE_URL = "https://webmail.test"
USER_AGENT = "TestAgent/1.0"


def token_page(token: str) -> str:
    return f'<html><head><meta name="csrf-token" content="{token}"></head><body></body></html>'


def plain_text(source: str) -> httpx.Response:
    """A 200 download response with the bare text/plain header the webmail sends."""
    return httpx.Response(
        200, headers={"content-type": "text/plain"}, content=source.encode("utf-8")
    )


def _copy(response: httpx.Response) -> httpx.Response:
    """Fresh Response with the same status, headers and body (safe to return twice)."""
    return httpx.Response(
        response.status_code, headers=response.headers, content=response.content
    )


class FakeWebmail:
    """Call-counting stand-in for the webmail server.

    Token pages hand out tok1, tok2, ... in order.  POSTs to the action
    endpoints consume ``action_responses`` first and then answer with the
    success marker.  Every request is recorded in ``requests``.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.tokens_issued = 0
        self.token_status = 200
        self.login_response = httpx.Response(
            200, json={}, headers={"Set-Cookie": "sessionid=abc; Path=/"}
        )
        self.listing_response = httpx.Response(200, json={"partial_list": []})
        self.download_response = plain_text("Subject: hi\r\n\r\nbody\r\n")
        self.action_responses: list[httpx.Response] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if request.method == "GET" and path in ("/login", "/webmail/"):
            self.tokens_issued += 1
            return httpx.Response(self.token_status, html=token_page(f"tok{self.tokens_issued}"))
        if request.method == "POST" and path == "/requests/guest":
            return _copy(self.login_response)
        if request.method == "GET" and path == "/requests/webmail":
            action = request.url.params.get("action")
            if action == "maillist":
                return _copy(self.listing_response)
            if action == "downloadmessage":
                return _copy(self.download_response)
        if request.method == "POST" and path in (
            "/requests/webmail",
            "/requests/webmail/send-message",
        ):
            if self.action_responses:
                return _copy(self.action_responses.pop(0))
            return httpx.Response(200, json={"success": SUCCESS_MARKER})
        return httpx.Response(404, text="not found")

    # ── Inspection helpers ─────────────────────────────────────────────────────

    @staticmethod
    def form(request: httpx.Request) -> dict[str, str]:
        """Decode a form-encoded request body into a flat dict."""
        parsed = parse_qs(request.content.decode(), keep_blank_values=True)
        return {key: values[0] for key, values in parsed.items()}

    def posts(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "POST"]

    def token_fetches(self) -> list[httpx.Request]:
        return [
            r for r in self.requests
            if r.method == "GET" and r.url.path in ("/login", "/webmail/")
        ]


@pytest.fixture
def fake() -> FakeWebmail:
    return FakeWebmail()


@pytest.fixture
async def http(fake: FakeWebmail) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake)) as client:
        yield client


@pytest.fixture
def client(http: httpx.AsyncClient) -> WebmailClient:
    """WebmailClient wired to the fake server (no network)."""
    session = Session.open(user_agent=USER_AGENT, http_client=http)
    return WebmailClient(session, WebmailEndpoints.from_base_url(BASE_URL))
