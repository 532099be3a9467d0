"""CSRF token fetcher — pulls the per-page token out of server-rendered HTML."""

import logging
import re

import httpx

from mailbridge.webmail.errors import ErrorKind
from mailbridge.webmail.types import ApiResult, Failure, Success

logger = logging.getLogger(__name__)

# <meta name="csrf-token" content="...">
_TOKEN_RE = re.compile(r'<meta +name="csrf-token" +content="(.+?)">')


def parse_csrf_token(response: httpx.Response) -> ApiResult:
    """Classify a token page response; the payload is the literal token."""
    if response.status_code != 200:
        return Failure(
            ErrorKind.CSRF_TOKEN,
            f"Unexpected response status code: {response.status_code}",
        )
    match = _TOKEN_RE.search(response.text)
    if match is None:
        return Failure(ErrorKind.CSRF_TOKEN, "csrf-token not found")
    return Success(match.group(1))


async def fetch_csrf_token(http: httpx.AsyncClient, page_url: str, user_agent: str) -> str:
    """GET page_url with the session cookies and return its CSRF token.

    Raises CsrfTokenError on a non-200 status or a page without the token.
    No retry: the caller decides whether to retry the enclosing operation.
    """
    logger.debug("GET %s (csrf token)", page_url)
    response = await http.get(page_url, headers={"User-Agent": user_agent})
    token: str = parse_csrf_token(response).unwrap()
    return token
