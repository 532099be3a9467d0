"""Response classifier — turns raw webmail responses into ApiResult values.

The webmail answers every XHR-style request with a JSON object.  A failed
action carries an ``exception`` tag plus a human-readable ``error_info``;
a successful one carries ``success`` set to a fixed confirmation string.
Login is the odd one out: it has no success marker at all.
"""

import json
import logging
from collections.abc import Mapping
from typing import Any

import httpx

from mailbridge.webmail.errors import ErrorKind
from mailbridge.webmail.types import ApiResult, Failure, Success

logger = logging.getLogger(__name__)

# Server spelling, do not correct.
SUCCESS_MARKER = "the action was performed sucessfully"

AUTHENTIFICATION_FAILED = "AuthentificationFailed"
LOGIN_REQUIRED = "LoginRequired"

_JSON = "application/json"
_PLAIN_TEXT = "text/plain"


def media_type(response: httpx.Response) -> str:
    """Return the response's media type without parameters (e.g. charset)."""
    raw = response.headers.get("content-type", "")
    return raw.split(";", 1)[0].strip().lower()


def _json_object(response: httpx.Response) -> dict[str, Any] | None:
    """Parse a JSON-typed response body, or None if it isn't a JSON object."""
    if media_type(response) != _JSON:
        return None
    try:
        body = json.loads(response.content)
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.debug("Body declared as JSON but failed to parse: %.200r", response.content)
        return None
    return body if isinstance(body, dict) else None


def _error_info(body: Mapping[str, Any]) -> str:
    info = body.get("error_info")
    return str(info) if info is not None else str(body["exception"])


def classify_login(response: httpx.Response) -> ApiResult:
    """Classify the response to POST /requests/guest.

    Success means: JSON body, no ``exception`` field, and HTTP 200.
    """
    body = _json_object(response)
    if body is None:
        return Failure(ErrorKind.LOGIN, "Invalid response")
    if "exception" in body:
        if body["exception"] == AUTHENTIFICATION_FAILED:
            return Failure(ErrorKind.AUTHENTIFICATION_FAILED, _error_info(body))
        return Failure(ErrorKind.LOGIN, _error_info(body))
    if response.status_code != 200:
        return Failure(
            ErrorKind.LOGIN,
            f"Unexpected response status code: {response.status_code}",
        )
    return Success(body)


def classify_action(
    response: httpx.Response,
    exception_kinds: Mapping[str, ErrorKind] | None = None,
) -> ApiResult:
    """Classify the response to a state-mutating POST (seen, trash, send).

    ``exception_kinds`` maps specific server exception tags to error kinds;
    unlisted tags become GENERIC failures carrying ``error_info``.
    """
    body = _json_object(response)
    if body is None:
        return Failure(ErrorKind.GENERIC, "Invalid response")
    if "exception" in body:
        kind = (exception_kinds or {}).get(body["exception"], ErrorKind.GENERIC)
        return Failure(kind, _error_info(body))
    if body.get("success") != SUCCESS_MARKER:
        return Failure(ErrorKind.GENERIC, "Unexpected response")
    return Success(body)


def classify_listing(response: httpx.Response) -> ApiResult:
    """Classify a maillist response; the payload is ``partial_list`` as-is."""
    body = _json_object(response)
    if body is None:
        return Failure(ErrorKind.GENERIC, "Invalid response")
    if "partial_list" not in body:
        return Failure(ErrorKind.GENERIC, "Unexpected response")
    return Success(body["partial_list"])


def classify_download(response: httpx.Response) -> ApiResult:
    """Classify a downloadmessage response; the payload is the raw source."""
    if response.status_code != 200:
        return Failure(
            ErrorKind.GENERIC,
            f"Unexpected response status code: {response.status_code}",
        )
    # Exact header match, no parameters.
    if response.headers.get("content-type") != _PLAIN_TEXT:
        return Failure(ErrorKind.GENERIC, "Invalid response")
    return Success(response.text)
