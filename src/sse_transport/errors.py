"""Error kinds raised by the session transport.

Every error carries the HTTP status an owner should answer with when the
error ends an HTTP exchange. The message text doubles as the short,
human-readable reason placed in the response body.
"""

from __future__ import annotations


class SessionTransportError(Exception):
    """Base class for transport errors."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotConnectedError(SessionTransportError):
    """Outbound delivery attempted while the stream is not open."""

    def __init__(self, message: str = "Not connected") -> None:
        super().__init__(message)


class TransportClosedError(SessionTransportError):
    """The session was closed and cannot be reopened."""

    def __init__(self, message: str = "Transport is closed") -> None:
        super().__init__(message)


class UnsupportedContentTypeError(SessionTransportError):
    """Inbound write without a JSON content type."""

    status_code = 400

    def __init__(self, content_type: str | None) -> None:
        super().__init__(f"Unsupported content-type: {content_type or '<missing>'}")
        self.content_type = content_type


class MalformedBodyError(SessionTransportError):
    """Inbound body is not parseable as JSON."""

    status_code = 400


class InvalidMessageError(SessionTransportError):
    """Parsed value does not have the shape of a JSON-RPC message."""

    status_code = 400


class MessageEncodingError(SessionTransportError):
    """Outbound message cannot be encoded as strict JSON text."""
