"""Frame decoding and building for the WebThings streaming channel.

Inbound frames are JSON objects discriminated by ``messageType``. The gateway
batches several changes into one frame, so a single frame decodes into a list
of notifications: a generic ``MessageReceived`` for every frame, followed by
one specific notification per changed property, action or event.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar

_LOGGER = logging.getLogger(__name__)

MSG_PROPERTY_STATUS = "propertyStatus"
MSG_ACTION_STATUS = "actionStatus"
MSG_EVENT = "event"
MSG_CONNECTED = "connected"
MSG_THING_MODIFIED = "thingModified"
MSG_THING_ADDED = "thingAdded"
MSG_THING_REMOVED = "thingRemoved"
MSG_ADD_EVENT_SUBSCRIPTION = "addEventSubscription"


@dataclass(frozen=True, slots=True)
class Notification:
    """Base class for everything delivered to channel listeners."""

    event: ClassVar[str] = ""


@dataclass(frozen=True, slots=True)
class MessageReceived(Notification):
    event: ClassVar[str] = "message"

    device_id: str | None
    data: Any


@dataclass(frozen=True, slots=True)
class PropertyChanged(Notification):
    event: ClassVar[str] = "propertyChanged"

    device_id: str
    name: str
    value: Any


@dataclass(frozen=True, slots=True)
class ActionTriggered(Notification):
    event: ClassVar[str] = "actionTriggered"

    device_id: str
    name: str
    value: Any


@dataclass(frozen=True, slots=True)
class EventRaised(Notification):
    event: ClassVar[str] = "eventRaised"

    device_id: str
    name: str
    value: Any


@dataclass(frozen=True, slots=True)
class ConnectionStateChanged(Notification):
    event: ClassVar[str] = "connectStateChanged"

    device_id: str
    data: Any


@dataclass(frozen=True, slots=True)
class DeviceModified(Notification):
    event: ClassVar[str] = "deviceModified"

    device_id: str
    data: Any


@dataclass(frozen=True, slots=True)
class DeviceAdded(Notification):
    event: ClassVar[str] = "deviceAdded"

    device_id: str
    data: Any


@dataclass(frozen=True, slots=True)
class DeviceRemoved(Notification):
    event: ClassVar[str] = "deviceRemoved"

    device_id: str
    data: Any


@dataclass(frozen=True, slots=True)
class Pairing(Notification):
    """Connection-scoped pairing handshake value."""

    event: ClassVar[str] = "pair"

    value: Any


@dataclass(frozen=True, slots=True)
class Unknown(Notification):
    """Frame whose shape or ``messageType`` is not recognized."""

    event: ClassVar[str] = "unknown"

    message_type: Any
    device_id: str | None = None
    data: Any = None


@dataclass(frozen=True, slots=True)
class ChannelError(Notification):
    event: ClassVar[str] = "error"

    reason: BaseException | None = None


@dataclass(frozen=True, slots=True)
class ChannelClosed(Notification):
    event: ClassVar[str] = "close"


@dataclass(frozen=True, slots=True)
class SubscriptionRequest:
    """Event subscription for one device, sent once on the channel."""

    device_id: str
    events: Mapping[str, Any] = field(default_factory=dict)


_FAN_OUT: dict[str, type[PropertyChanged | ActionTriggered | EventRaised]] = {
    MSG_PROPERTY_STATUS: PropertyChanged,
    MSG_ACTION_STATUS: ActionTriggered,
    MSG_EVENT: EventRaised,
}

_WHOLE: dict[
    str,
    type[ConnectionStateChanged | DeviceModified | DeviceAdded | DeviceRemoved],
] = {
    MSG_CONNECTED: ConnectionStateChanged,
    MSG_THING_MODIFIED: DeviceModified,
    MSG_THING_ADDED: DeviceAdded,
    MSG_THING_REMOVED: DeviceRemoved,
}


def decode_frame(text: str) -> list[Notification]:
    """Decode one text frame into notifications, in dispatch order.

    Frames that are not JSON objects decode to an empty list.
    """
    try:
        message = json.loads(text)
    except ValueError:
        _LOGGER.debug("Ignoring non-JSON frame: %.80s", text)
        return []
    if not isinstance(message, dict):
        _LOGGER.debug("Ignoring non-object frame: %.80s", text)
        return []
    return decode_message(message)


def decode_message(message: Mapping[str, Any]) -> list[Notification]:
    """Decode an already parsed frame object."""
    device_id = message.get("id")
    data = message.get("data")
    message_type = message.get("messageType")

    notifications: list[Notification] = [MessageReceived(device_id, data)]
    if "data" not in message:
        notifications.append(Unknown(message_type, device_id, data))
    elif "id" in message:
        notifications.extend(_decode_device_message(message_type, device_id, data))
    else:
        notifications.append(_decode_connection_message(message_type, data))
    return notifications


def _decode_device_message(
    message_type: Any, device_id: str, data: Any
) -> list[Notification]:
    if not isinstance(message_type, str):
        return [Unknown(message_type, device_id, data)]
    if message_type in _FAN_OUT:
        if not isinstance(data, Mapping):
            return [Unknown(message_type, device_id, data)]
        factory = _FAN_OUT[message_type]
        return [factory(device_id, name, value) for name, value in data.items()]
    if message_type in _WHOLE:
        return [_WHOLE[message_type](device_id, data)]
    return [Unknown(message_type, device_id, data)]


def _decode_connection_message(message_type: Any, data: Any) -> Notification:
    if (
        message_type == MSG_ACTION_STATUS
        and isinstance(data, Mapping)
        and list(data) == ["pair"]
    ):
        return Pairing(data["pair"])
    return Unknown(message_type, None, data)


def build_subscription(request: SubscriptionRequest) -> dict[str, Any]:
    """Build an ``addEventSubscription`` frame."""
    return {
        "messageType": MSG_ADD_EVENT_SUBSCRIPTION,
        "id": request.device_id,
        "data": dict(request.events),
    }
