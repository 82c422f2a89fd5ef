"""Client error types for WebThings gateway interactions."""

from __future__ import annotations


class WebThingsClientError(Exception):
    """Base error for WebThings gateway client failures."""


class WebThingsTimeout(WebThingsClientError):
    """Timeout while communicating with the gateway."""


class WebThingsConnectionError(WebThingsClientError):
    """Network connection to the gateway failed."""


class WebThingsHandshakeError(WebThingsClientError):
    """WebSocket handshake failed."""


class UnreachableError(WebThingsConnectionError):
    """The gateway did not answer the initial probe."""


class NotConnectedError(WebThingsClientError):
    """Operation requires a connected streaming channel."""


class HttpStatusError(WebThingsClientError):
    """HTTP response outside the 2xx range."""

    def __init__(self, code: int, status_text: str) -> None:
        super().__init__(f"{code}: {status_text}")
        self.code = code
        self.status_text = status_text


class UnexpectedContentTypeError(WebThingsClientError):
    """Response body is not JSON although JSON was expected."""

    def __init__(self, actual: str) -> None:
        super().__init__(
            f"Content-Type is '{actual}' but expected 'application/json'"
        )
        self.actual = actual
