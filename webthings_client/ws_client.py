"""WebSocket client wrapper for the WebThings gateway."""

from __future__ import annotations

import json
import ssl as ssl_lib
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from websockets.asyncio.client import ClientConnection
from websockets.exceptions import ConnectionClosed, WebSocketException

from .errors import NotConnectedError, WebThingsConnectionError
from .ws import connect_websocket

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


class WebThingsWsMessageType(Enum):
    """Normalized WebSocket message types."""

    TEXT = "text"
    CLOSED = "closed"
    ERROR = "error"


@dataclass(frozen=True)
class WebThingsWsMessage:
    """Normalized WebSocket message payload."""

    type: WebThingsWsMessageType
    data: str | None = None
    error: BaseException | None = None


class WebThingsWsClient:
    """Wrapper around websockets library for the WebThings gateway."""

    def __init__(self) -> None:
        self._ws: ClientConnection | None = None

    @property
    def connected(self) -> bool:
        return self._ws is not None

    async def connect(
        self,
        url: str,
        *,
        ssl: ssl_lib.SSLContext | None = None,
        ping_interval: int | None = 20,
        open_timeout: float | None = None,
    ) -> None:
        """Connect to the gateway websocket."""
        self._ws = await connect_websocket(
            url,
            ssl=ssl,
            ping_interval=ping_interval,
            open_timeout=open_timeout,
        )

    async def close(self) -> None:
        """Close the websocket connection."""
        if self._ws is not None:
            await self._ws.close()

    async def send_json(self, payload: dict[str, Any]) -> None:
        """Send a JSON payload as one text frame."""
        if self._ws is None:
            raise NotConnectedError("WebSocket is not connected")
        try:
            await self._ws.send(json.dumps(payload))
        except ConnectionClosed as err:
            raise NotConnectedError("WebSocket is closed") from err
        except (OSError, WebSocketException) as err:
            raise WebThingsConnectionError("WebSocket send failed") from err

    def __aiter__(self) -> AsyncIterator[WebThingsWsMessage]:
        if self._ws is None:
            raise NotConnectedError("WebSocket is not connected")
        return self._iter_messages()

    async def _iter_messages(self) -> AsyncIterator[WebThingsWsMessage]:
        if self._ws is None:
            raise NotConnectedError("WebSocket is not connected")

        try:
            async for msg in self._ws:
                # Binary frames carry nothing the gateway protocol defines.
                if isinstance(msg, str):
                    yield WebThingsWsMessage(WebThingsWsMessageType.TEXT, msg)
        except ConnectionClosed:
            yield WebThingsWsMessage(type=WebThingsWsMessageType.CLOSED)
        except Exception as err:
            yield WebThingsWsMessage(type=WebThingsWsMessageType.ERROR, error=err)
        else:
            yield WebThingsWsMessage(type=WebThingsWsMessageType.CLOSED)
