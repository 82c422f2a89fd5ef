"""Tests for WebThingsChannel dispatch and lifecycle."""

from __future__ import annotations

import json
import logging
from unittest.mock import patch

import pytest
from websockets.exceptions import ConnectionClosedOK
from websockets.frames import Close

from webthings_client.channel import ChannelState, WebThingsChannel
from webthings_client.discovery import ConnectionDescriptor
from webthings_client.errors import (
    NotConnectedError,
    WebThingsClientError,
    WebThingsHandshakeError,
)
from webthings_client.protocol import (
    ChannelClosed,
    ChannelError,
    MessageReceived,
    Pairing,
    PropertyChanged,
    SubscriptionRequest,
    Unknown,
)

from .conftest import AsyncIteratorMock

CONNECT = "webthings_client.ws_client.connect_websocket"


def frame(**fields) -> str:
    return json.dumps(fields)


def record_all(channel: WebThingsChannel) -> list:
    received: list = []
    channel.on("*", received.append)
    return received


class TestDispatch:
    """Tests for synchronous frame dispatch."""

    def test_generic_then_per_property(self, descriptor: ConnectionDescriptor):
        """Test message fires before each propertyChanged, in key order."""
        channel = WebThingsChannel(descriptor)
        received = record_all(channel)

        channel.dispatch_text(
            frame(id="d1", data={"a": 1, "b": 2}, messageType="propertyStatus")
        )

        assert received == [
            MessageReceived("d1", {"a": 1, "b": 2}),
            PropertyChanged("d1", "a", 1),
            PropertyChanged("d1", "b", 2),
        ]

    def test_named_listeners(self, descriptor: ConnectionDescriptor):
        """Test listeners only receive their own event."""
        channel = WebThingsChannel(descriptor)
        changes: list = []
        pairs: list = []
        channel.on("propertyChanged", changes.append)
        channel.on("pair", pairs.append)

        channel.dispatch_text(frame(data={"pair": "xyz"}, messageType="actionStatus"))
        channel.dispatch_text(
            frame(id="d1", data={"on": True}, messageType="propertyStatus")
        )

        assert pairs == [Pairing("xyz")]
        assert changes == [PropertyChanged("d1", "on", True)]

    def test_unknown_type_logged_without_specific_event(
        self, descriptor: ConnectionDescriptor, caplog
    ):
        """Test unrecognized types warn and raise no named event."""
        channel = WebThingsChannel(descriptor)
        messages: list = []
        changes: list = []
        channel.on("message", messages.append)
        channel.on("propertyChanged", changes.append)

        with caplog.at_level(logging.WARNING, logger="webthings_client.channel"):
            channel.dispatch_text(
                frame(id="d1", data={"x": 1}, messageType="somethingNew")
            )

        assert messages == [MessageReceived("d1", {"x": 1})]
        assert changes == []
        assert "somethingNew" in caplog.text

    def test_unknown_delivered_to_unknown_listeners(
        self, descriptor: ConnectionDescriptor
    ):
        """Test Unknown notifications reach explicit unknown listeners."""
        channel = WebThingsChannel(descriptor)
        unknown: list = []
        channel.on("unknown", unknown.append)

        channel.dispatch_text(frame(id="d1", data={}, messageType="somethingNew"))

        assert unknown == [Unknown("somethingNew", "d1", {})]

    def test_invalid_json_ignored(self, descriptor: ConnectionDescriptor):
        """Test invalid frames produce no notifications."""
        channel = WebThingsChannel(descriptor)
        received = record_all(channel)

        channel.dispatch_text("not json {")

        assert received == []

    def test_failing_listener_does_not_stop_dispatch(
        self, descriptor: ConnectionDescriptor, caplog
    ):
        """Test a raising listener is logged and later listeners still run."""
        channel = WebThingsChannel(descriptor)

        def broken(notification):
            raise RuntimeError("boom")

        channel.on("propertyChanged", broken)
        received: list = []
        channel.on("propertyChanged", received.append)

        channel.dispatch_text(
            frame(id="d1", data={"a": 1, "b": 2}, messageType="propertyStatus")
        )

        assert len(received) == 2
        assert "boom" in caplog.text

    def test_decode_failure_is_logged_and_dropped(
        self, descriptor: ConnectionDescriptor, caplog
    ):
        """Test a frame that fails to decode is dropped without raising."""
        channel = WebThingsChannel(descriptor)
        received = record_all(channel)

        with patch(
            "webthings_client.channel.decode_frame",
            side_effect=RuntimeError("decoder bug"),
        ):
            channel.dispatch_text(frame(id="d1", data={}, messageType="connected"))

        assert received == []
        assert "decoder bug" in caplog.text

    def test_remove_listener(self, descriptor: ConnectionDescriptor):
        """Test the returned callable unregisters the listener."""
        channel = WebThingsChannel(descriptor)
        received: list = []
        remove = channel.on("message", received.append)

        remove()
        channel.dispatch_text(frame(id="d1", data={}, messageType="connected"))

        assert received == []


class TestConnect:
    """Tests for the channel lifecycle."""

    async def test_connect_uses_descriptor_url(self, descriptor: ConnectionDescriptor):
        """Test the socket URL carries the token as jwt parameter."""
        mock_ws = AsyncIteratorMock([])
        with patch(CONNECT, return_value=mock_ws) as mock_connect:
            channel = WebThingsChannel(descriptor, port=9000)
            await channel.connect()
            await channel._listen_task

        assert mock_connect.call_args.args[0] == (
            "ws://192.168.1.100:9000/things?jwt=test-token"
        )
        assert mock_connect.call_args.kwargs["ssl"] is None

    async def test_frames_dispatched_in_arrival_order(
        self, descriptor: ConnectionDescriptor
    ):
        """Test every frame's notifications finish before the next frame."""
        mock_ws = AsyncIteratorMock(
            [
                frame(id="d1", data={"a": 1, "b": 2}, messageType="propertyStatus"),
                frame(id="d1", data={"x": 1}, messageType="somethingNew"),
                b"\x00binary",
                frame(id="d2", data={"c": 3}, messageType="propertyStatus"),
            ]
        )
        with patch(CONNECT, return_value=mock_ws):
            channel = WebThingsChannel(descriptor)
            changes: list = []
            channel.on("propertyChanged", changes.append)
            received = record_all(channel)

            await channel.connect()
            assert channel.state is ChannelState.CONNECTED
            await channel._listen_task

        assert changes == [
            PropertyChanged("d1", "a", 1),
            PropertyChanged("d1", "b", 2),
            PropertyChanged("d2", "c", 3),
        ]
        assert received[-1] == ChannelClosed()
        assert channel.state is ChannelState.DISCONNECTED

    async def test_malformed_message_type_keeps_channel_alive(
        self, descriptor: ConnectionDescriptor
    ):
        """Test a frame with a non-string messageType does not stop later frames."""
        mock_ws = AsyncIteratorMock(
            [
                frame(id="d1", data={}, messageType=["weird"]),
                frame(id="d2", data={"c": 3}, messageType="propertyStatus"),
            ]
        )
        with patch(CONNECT, return_value=mock_ws):
            channel = WebThingsChannel(descriptor)
            changes: list = []
            channel.on("propertyChanged", changes.append)
            await channel.connect()
            await channel._listen_task

        assert changes == [PropertyChanged("d2", "c", 3)]
        assert channel.state is ChannelState.DISCONNECTED

    async def test_connect_failure_leaves_disconnected(
        self, descriptor: ConnectionDescriptor
    ):
        """Test a failed connect propagates and resets the state."""
        with patch(CONNECT, side_effect=WebThingsHandshakeError("rejected")):
            channel = WebThingsChannel(descriptor)
            with pytest.raises(WebThingsHandshakeError):
                await channel.connect()

        assert channel.state is ChannelState.DISCONNECTED

    async def test_connect_twice_rejected(self, descriptor: ConnectionDescriptor):
        """Test connect while connected raises."""
        with patch(CONNECT, return_value=AsyncIteratorMock([])):
            channel = WebThingsChannel(descriptor)
            await channel.connect()
            with pytest.raises(WebThingsClientError, match="already connected"):
                await channel.connect()
            await channel._listen_task

    async def test_transport_error_marks_failed(self, descriptor: ConnectionDescriptor):
        """Test a transport error emits error and leaves the channel failed."""
        error = RuntimeError("reset")
        with patch(CONNECT, return_value=AsyncIteratorMock([], raise_on_iter=error)):
            channel = WebThingsChannel(descriptor)
            errors: list = []
            channel.on("error", errors.append)
            await channel.connect()
            await channel._listen_task

        assert errors == [ChannelError(error)]
        assert channel.state is ChannelState.FAILED

    async def test_reconnect_after_close(self, descriptor: ConnectionDescriptor):
        """Test a closed channel can be connected again explicitly."""
        with patch(CONNECT, side_effect=[AsyncIteratorMock([]), AsyncIteratorMock([])]):
            channel = WebThingsChannel(descriptor)
            await channel.connect()
            await channel._listen_task
            await channel.connect()
            assert channel.state is ChannelState.CONNECTED
            await channel._listen_task


class TestSendAndDisconnect:
    """Tests for outbound subscriptions and disconnect."""

    async def test_send_not_connected(self, descriptor: ConnectionDescriptor):
        """Test send on a disconnected channel raises without writing."""
        channel = WebThingsChannel(descriptor)

        with pytest.raises(NotConnectedError):
            await channel.send(SubscriptionRequest("lamp", {"overheated": {}}))

    async def test_disconnect_not_connected(self, descriptor: ConnectionDescriptor):
        """Test disconnect without a socket raises."""
        channel = WebThingsChannel(descriptor)

        with pytest.raises(NotConnectedError):
            await channel.disconnect()

    async def test_send_on_peer_closed_socket(self, descriptor: ConnectionDescriptor):
        """Test a send racing a peer close raises NotConnectedError."""
        mock_ws = AsyncIteratorMock([])
        mock_ws.send.side_effect = ConnectionClosedOK(Close(1000, ""), None)
        with patch(CONNECT, return_value=mock_ws):
            channel = WebThingsChannel(descriptor)
            await channel.connect()
            with pytest.raises(NotConnectedError):
                await channel.send(SubscriptionRequest("lamp", {}))
            await channel._listen_task

    async def test_send_and_disconnect(self, descriptor: ConnectionDescriptor):
        """Test a subscription is written and disconnect emits close."""
        mock_ws = AsyncIteratorMock([])
        with patch(CONNECT, return_value=mock_ws):
            channel = WebThingsChannel(descriptor)
            closed: list = []
            channel.on("close", closed.append)
            await channel.connect()

            await channel.send(
                SubscriptionRequest("lamp", {"overheated": {"type": "number"}})
            )
            await channel.disconnect()

        sent = json.loads(mock_ws.send.call_args.args[0])
        assert sent == {
            "messageType": "addEventSubscription",
            "id": "lamp",
            "data": {"overheated": {"type": "number"}},
        }
        mock_ws.close.assert_awaited_once()
        assert closed == [ChannelClosed()]
        assert channel.state is ChannelState.DISCONNECTED
