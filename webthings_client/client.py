"""High-level client for a WebThings gateway.

Combines the HTTP request executor with the streaming channel:

    async with aiohttp.ClientSession() as session:
        client = await WebThingsClient.local(session, token)
        for device in await client.list_devices():
            print(device.title)

        client.on("propertyChanged", print)
        await client.connect()
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

import aiohttp

from .channel import ChannelState, Listener, WebThingsChannel
from .discovery import ConnectionDescriptor, resolve_local
from .errors import NotConnectedError, WebThingsClientError
from .http import DEFAULT_REQUEST_TIMEOUT, WebThingsHttpClient
from .model import Device, Event
from .protocol import SubscriptionRequest


class WebThingsClient:
    """Client for one gateway, owning at most one streaming channel."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        descriptor: ConnectionDescriptor,
        *,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        ping_interval: int | None = 20,
    ) -> None:
        self.descriptor = descriptor
        self._http = WebThingsHttpClient(session, descriptor, timeout=request_timeout)
        self._ping_interval = ping_interval
        self._channel: WebThingsChannel | None = None
        self._listeners: list[tuple[str, Listener]] = []

    @classmethod
    async def local(
        cls,
        session: aiohttp.ClientSession,
        token: str,
        **kwargs: Any,
    ) -> WebThingsClient:
        """Probe the local gateway and build a client for it.

        Keyword arguments are passed to ``resolve_local``.

        Raises:
            UnreachableError: If the gateway does not answer the probe
        """
        descriptor = await resolve_local(session, token, **kwargs)
        return cls(session, descriptor)

    # -------------------------------------------------------------------------
    # Public API: Requests
    # -------------------------------------------------------------------------

    async def list_devices(self) -> list[Device]:
        descriptions = await self.get("/things")
        if descriptions is not None and not isinstance(descriptions, list):
            raise WebThingsClientError("Invalid device list")
        return [Device(description, self) for description in descriptions or []]

    async def get_device(self, device_id: str) -> Device:
        description = await self.get(f"/things/{device_id}")
        if not isinstance(description, Mapping):
            raise WebThingsClientError(f"Invalid description for device {device_id}")
        return Device(description, self)

    async def get(self, path: str) -> Any:
        return await self._http.get(path)

    async def put(self, path: str, value: Any = None) -> Any:
        return await self._http.put(path, value)

    async def post(self, path: str, value: Any = None) -> Any:
        return await self._http.post(path, value)

    async def delete(self, path: str) -> None:
        await self._http.delete(path)

    async def execute_action(
        self, device: Device, action_name: str, input: Any = None
    ) -> Any:
        """Request a named action of a device."""
        action = device.actions.get(action_name)
        if action is None:
            raise WebThingsClientError(
                f"Device {device.id} has no action '{action_name}'"
            )
        return await action.execute(input)

    # -------------------------------------------------------------------------
    # Public API: Streaming
    # -------------------------------------------------------------------------

    @property
    def state(self) -> ChannelState:
        if self._channel is None:
            return ChannelState.DISCONNECTED
        return self._channel.state

    def on(self, event: str, callback: Listener) -> Callable[[], None]:
        """Register a notification listener.

        Listeners survive reconnects: each new channel gets every listener
        registered so far.
        """
        entry = (event, callback)
        self._listeners.append(entry)
        if self._channel is not None:
            self._channel.on(event, callback)

        def remove() -> None:
            if entry in self._listeners:
                self._listeners.remove(entry)
            if self._channel is not None:
                self._channel.off(event, callback)

        return remove

    async def connect(self, port: int | None = None) -> None:
        """Open a fresh streaming channel.

        Raises:
            WebThingsClientError: If the current channel is still open
        """
        if self._channel is not None and self._channel.state in (
            ChannelState.CONNECTING,
            ChannelState.CONNECTED,
        ):
            raise WebThingsClientError(
                f"Channel is already {self._channel.state.value}"
            )

        channel = WebThingsChannel(
            self.descriptor, port=port, ping_interval=self._ping_interval
        )
        for event, callback in self._listeners:
            channel.on(event, callback)
        self._channel = channel
        await channel.connect()

    async def disconnect(self) -> None:
        await self._require_channel().disconnect()

    async def subscribe_events(
        self, device: Device, events: Mapping[str, Event | Mapping[str, Any]]
    ) -> None:
        """Subscribe to named events of one device."""
        descriptions = {
            name: event.description if isinstance(event, Event) else event
            for name, event in events.items()
        }
        await self._require_channel().send(SubscriptionRequest(device.id, descriptions))

    def _require_channel(self) -> WebThingsChannel:
        if self._channel is None:
            raise NotConnectedError("Socket not connected")
        return self._channel
