"""WebSocket helpers for the WebThings gateway streaming endpoint."""

from __future__ import annotations

import ssl as ssl_lib

import websockets
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import (
    InvalidHandshake,
    InvalidURI,
    WebSocketException,
)

from .errors import (
    WebThingsConnectionError,
    WebThingsHandshakeError,
    WebThingsTimeout,
)


async def connect_websocket(
    url: str,
    *,
    ssl: ssl_lib.SSLContext | None = None,
    ping_interval: int | None = 20,
    open_timeout: float | None = None,
) -> ClientConnection:
    """Connect to a WebSocket endpoint.

    Args:
        url: Full ws:// or wss:// URL, including the ``jwt`` query parameter
        ssl: SSL context for wss:// URLs, None for ws://
        ping_interval: Interval for ping frames
        open_timeout: Opening handshake timeout, None to wait indefinitely
    """
    try:
        return await websockets.connect(
            url,
            ssl=ssl,
            ping_interval=ping_interval,
            open_timeout=open_timeout,
            close_timeout=5,
            max_size=None,
        )
    except TimeoutError as err:
        raise WebThingsTimeout("WebSocket connection timed out") from err
    except (InvalidHandshake, InvalidURI) as err:
        raise WebThingsHandshakeError("WebSocket handshake failed") from err
    except (OSError, WebSocketException) as err:
        raise WebThingsConnectionError("WebSocket connection failed") from err
