"""Errors raised by the POP3/SMTP backends before the webmail is involved."""


class ProtocolError(Exception):
    """Base class for protocol-side rejections."""


class InvalidAddressError(ProtocolError):
    """Raised when a login identity is not of the form user@domain."""


class NotAllowedError(ProtocolError):
    """Raised when a session tries to act outside its authenticated identity."""


class EnvelopeMismatchError(ProtocolError):
    """Raised when a submitted message's headers disagree with the SMTP envelope."""
