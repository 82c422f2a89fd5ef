"""Client library for the WebThings gateway device API."""

__version__ = "0.1.0"

from .channel import ChannelState, WebThingsChannel
from .client import WebThingsClient
from .discovery import ConnectionDescriptor, resolve_local
from .errors import (
    HttpStatusError,
    NotConnectedError,
    UnexpectedContentTypeError,
    UnreachableError,
    WebThingsClientError,
    WebThingsConnectionError,
    WebThingsHandshakeError,
    WebThingsTimeout,
)
from .http import RequestSpec, WebThingsHttpClient
from .model import Action, Device, Event, Link, Property, href_from_links
from .protocol import (
    ActionTriggered,
    ChannelClosed,
    ChannelError,
    ConnectionStateChanged,
    DeviceAdded,
    DeviceModified,
    DeviceRemoved,
    EventRaised,
    MessageReceived,
    Notification,
    Pairing,
    PropertyChanged,
    SubscriptionRequest,
    Unknown,
    build_subscription,
    decode_frame,
)
from .ws import connect_websocket
from .ws_client import WebThingsWsClient, WebThingsWsMessage, WebThingsWsMessageType

__all__ = [
    "Action",
    "ActionTriggered",
    "ChannelClosed",
    "ChannelError",
    "ChannelState",
    "ConnectionDescriptor",
    "ConnectionStateChanged",
    "Device",
    "DeviceAdded",
    "DeviceModified",
    "DeviceRemoved",
    "Event",
    "EventRaised",
    "HttpStatusError",
    "Link",
    "MessageReceived",
    "NotConnectedError",
    "Notification",
    "Pairing",
    "Property",
    "PropertyChanged",
    "RequestSpec",
    "SubscriptionRequest",
    "UnexpectedContentTypeError",
    "Unknown",
    "UnreachableError",
    "WebThingsChannel",
    "WebThingsClient",
    "WebThingsClientError",
    "WebThingsConnectionError",
    "WebThingsHandshakeError",
    "WebThingsHttpClient",
    "WebThingsTimeout",
    "WebThingsWsClient",
    "WebThingsWsMessage",
    "WebThingsWsMessageType",
    "__version__",
    "build_subscription",
    "connect_websocket",
    "decode_frame",
    "href_from_links",
    "resolve_local",
]
