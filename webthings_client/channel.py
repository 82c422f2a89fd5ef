"""Streaming channel for live WebThings gateway notifications."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from enum import Enum

from .discovery import ConnectionDescriptor
from .errors import NotConnectedError, WebThingsClientError
from .protocol import (
    ChannelClosed,
    ChannelError,
    Notification,
    SubscriptionRequest,
    Unknown,
    build_subscription,
    decode_frame,
)
from .ws_client import WebThingsWsClient, WebThingsWsMessageType

_LOGGER = logging.getLogger(__name__)

ALL_EVENTS = "*"

Listener = Callable[[Notification], None]


class ChannelState(Enum):
    """Lifecycle of one streaming channel connection."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"


class WebThingsChannel:
    """One persistent WebSocket to the gateway, demultiplexed into notifications.

    Usage:
        channel = WebThingsChannel(descriptor)
        channel.on("propertyChanged", my_handler)
        await channel.connect()
        await channel.send(SubscriptionRequest("lamp", {"overheated": {...}}))
        await channel.disconnect()

    Listeners run synchronously on the dispatch path. Every notification
    decoded from one frame is delivered before the next frame is read, so a
    listener doing slow work delays all later frames.
    """

    def __init__(
        self,
        descriptor: ConnectionDescriptor,
        *,
        port: int | None = None,
        ping_interval: int | None = 20,
        open_timeout: float | None = None,
    ) -> None:
        self._descriptor = descriptor
        self._port = port
        self._ping_interval = ping_interval
        self._open_timeout = open_timeout

        self._state = ChannelState.DISCONNECTED
        self._ws: WebThingsWsClient | None = None
        self._listen_task: asyncio.Task[None] | None = None
        self._listeners: dict[str, list[Listener]] = {}

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ChannelState.CONNECTED

    # -------------------------------------------------------------------------
    # Public API: Listeners
    # -------------------------------------------------------------------------

    def on(self, event: str, callback: Listener) -> Callable[[], None]:
        """Register a listener for one event name, or ``"*"`` for all.

        Returns a callable that removes the listener again.
        """
        self._listeners.setdefault(event, []).append(callback)
        return lambda: self.off(event, callback)

    def off(self, event: str, callback: Listener) -> None:
        listeners = self._listeners.get(event, [])
        if callback in listeners:
            listeners.remove(callback)

    def emit(self, notification: Notification) -> None:
        """Deliver one notification to its listeners, then to ``"*"`` listeners."""
        for event in (notification.event, ALL_EVENTS):
            for callback in list(self._listeners.get(event, ())):
                try:
                    callback(notification)
                except Exception:
                    _LOGGER.exception(
                        "Listener %r failed for %s", callback, notification.event
                    )

    def dispatch_text(self, text: str) -> None:
        """Decode one text frame and deliver its notifications in order."""
        try:
            notifications = decode_frame(text)
        except Exception:
            _LOGGER.exception("Dropping undecodable frame: %.80s", text)
            return
        for notification in notifications:
            if isinstance(notification, Unknown):
                _LOGGER.warning(
                    "Unknown message from socket %s: %s (%s)",
                    notification.device_id or "",
                    notification.message_type,
                    notification.data,
                )
            self.emit(notification)

    # -------------------------------------------------------------------------
    # Public API: Connection Management
    # -------------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the socket and start dispatching inbound frames.

        Raises:
            WebThingsClientError: If the channel is already connecting or connected
            WebThingsTimeout: If the transport times out
            WebThingsHandshakeError: If the gateway rejects the handshake
            WebThingsConnectionError: If the socket cannot be opened
        """
        if self._state in (ChannelState.CONNECTING, ChannelState.CONNECTED):
            raise WebThingsClientError(f"Channel is already {self._state.value}")

        self._state = ChannelState.CONNECTING
        ws_client = WebThingsWsClient()
        _LOGGER.info(
            "Connecting to %s://%s:%s/things",
            "wss" if self._descriptor.secure else "ws",
            self._descriptor.address,
            self._port or self._descriptor.port,
        )
        try:
            await ws_client.connect(
                self._descriptor.ws_url(self._port),
                ssl=self._descriptor.ws_ssl(),
                ping_interval=self._ping_interval,
                open_timeout=self._open_timeout,
            )
        except BaseException:
            self._state = ChannelState.DISCONNECTED
            raise

        self._ws = ws_client
        self._state = ChannelState.CONNECTED
        self._listen_task = asyncio.create_task(self._listen(ws_client))

    async def disconnect(self) -> None:
        """Close the socket; listeners receive ``close`` once it is closed.

        Raises:
            NotConnectedError: If no socket is open
        """
        if self._ws is None:
            raise NotConnectedError("Socket not connected")

        _LOGGER.info("Closing channel")
        await self._ws.close()
        if self._listen_task is not None:
            await self._listen_task

    async def send(self, request: SubscriptionRequest) -> None:
        """Send an event subscription for one device.

        Raises:
            NotConnectedError: If the channel is not connected
        """
        if self._ws is None or self._state is not ChannelState.CONNECTED:
            raise NotConnectedError("Socket not connected")

        frame = build_subscription(request)
        await self._ws.send_json(frame)
        _LOGGER.debug(
            "Subscribed %s to events: %s", request.device_id, list(request.events)
        )

    # -------------------------------------------------------------------------
    # Internal: Message Listener
    # -------------------------------------------------------------------------

    async def _listen(self, ws_client: WebThingsWsClient) -> None:
        """Dispatch frames until the socket closes or fails."""
        try:
            async for msg in ws_client:
                if msg.type is WebThingsWsMessageType.TEXT and msg.data is not None:
                    self.dispatch_text(msg.data)
                elif msg.type is WebThingsWsMessageType.CLOSED:
                    _LOGGER.info("WebSocket closed")
                    self._finish(ChannelState.DISCONNECTED)
                    self.emit(ChannelClosed())
                    return
                elif msg.type is WebThingsWsMessageType.ERROR:
                    _LOGGER.error("WebSocket error: %s", msg.error)
                    self._finish(ChannelState.FAILED)
                    self.emit(ChannelError(msg.error))
                    return
        except asyncio.CancelledError:
            _LOGGER.debug("Listener cancelled")
            self._finish(ChannelState.DISCONNECTED)
            raise

    def _finish(self, state: ChannelState) -> None:
        self._ws = None
        self._listen_task = None
        self._state = state
