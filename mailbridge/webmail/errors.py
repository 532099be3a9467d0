"""Error taxonomy for the webmail client.

Every failure the server can report maps to one ErrorKind member and one
exception class.  Classifiers produce Failure(kind, detail) values; client
methods unwrap them into the matching exception so callers can catch by type.
Transport failures (httpx.HTTPError) are never wrapped.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Failure categories recognised by the response classifiers."""

    GENERIC = "generic"
    CSRF_TOKEN = "csrf_token"
    LOGIN = "login"
    AUTHENTIFICATION_FAILED = "authentification_failed"
    LOGIN_REQUIRED = "login_required"
    UNSUPPORTED_MESSAGE = "unsupported_message"


class WebmailError(Exception):
    """Raised when the webmail server answers with something unexpected."""

    kind = ErrorKind.GENERIC


class CsrfTokenError(WebmailError):
    """Raised when the token page is unreachable or carries no csrf-token."""

    kind = ErrorKind.CSRF_TOKEN


class LoginError(WebmailError):
    """Raised when the login request fails for any unrecognised reason."""

    kind = ErrorKind.LOGIN


class AuthentificationFailedError(LoginError):
    """Raised when the server explicitly rejects the credentials."""

    kind = ErrorKind.AUTHENTIFICATION_FAILED


class LoginRequiredError(WebmailError):
    """Raised when a call fails because the session is no longer logged in."""

    kind = ErrorKind.LOGIN_REQUIRED


class UnsupportedMessageError(WebmailError):
    """Raised for outgoing messages the webmail cannot send (attachments)."""

    kind = ErrorKind.UNSUPPORTED_MESSAGE


ERROR_TYPES: dict[ErrorKind, type[WebmailError]] = {
    cls.kind: cls
    for cls in (
        WebmailError,
        CsrfTokenError,
        LoginError,
        AuthentificationFailedError,
        LoginRequiredError,
        UnsupportedMessageError,
    )
}
