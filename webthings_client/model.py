"""Typed views over WebThings gateway device descriptions."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .errors import WebThingsClientError

if TYPE_CHECKING:
    from .client import WebThingsClient


@dataclass(frozen=True)
class Link:
    """One entry of a description's ``links`` array."""

    rel: str | None
    href: str
    media_type: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Link:
        return cls(
            rel=data.get("rel"),
            href=data["href"],
            media_type=data.get("mediaType"),
        )


def href_from_links(links: Sequence[Mapping[str, Any]], rel: str) -> str:
    """Return the href of the first link with the given ``rel``."""
    for link in links:
        if link.get("rel") == rel and "href" in link:
            return link["href"]
    raise WebThingsClientError(f"No link with rel '{rel}'")


class Property:
    """Readable/writable attribute of a device."""

    def __init__(
        self, name: str, description: Mapping[str, Any], device: Device
    ) -> None:
        self.name = name
        self.description = description
        self.device = device

    @property
    def title(self) -> str | None:
        return self.description.get("title")

    @property
    def read_only(self) -> bool:
        return bool(self.description.get("readOnly", False))

    def href(self) -> str:
        return href_from_links(self.description.get("links", []), "property")

    async def get_value(self) -> Any:
        wrapper = await self.device.client.get(self.href())
        return wrapper[self.name]

    async def set_value(self, value: Any) -> Any:
        return await self.device.client.put(self.href(), {self.name: value})


class Action:
    """Invocable operation of a device."""

    def __init__(
        self, name: str, description: Mapping[str, Any], device: Device
    ) -> None:
        self.name = name
        self.description = description
        self.device = device

    @property
    def title(self) -> str | None:
        return self.description.get("title")

    def href(self) -> str:
        return href_from_links(self.description.get("links", []), "action")

    async def execute(self, input: Any = None) -> Any:
        """Request the action; ``input`` is sent only when given."""
        request: dict[str, Any] = {}
        if input is not None:
            request["input"] = input
        return await self.device.client.post(self.href(), {self.name: request})


class Event:
    """Occurrence a device can raise."""

    def __init__(
        self, name: str, description: Mapping[str, Any], device: Device
    ) -> None:
        self.name = name
        self.description = description
        self.device = device

    def href(self) -> str:
        return href_from_links(self.description.get("links", []), "event")


class Device:
    """View over one thing description returned by the gateway."""

    def __init__(self, description: Mapping[str, Any], client: WebThingsClient) -> None:
        self.description = description
        self.client = client
        self.properties = {
            name: Property(name, desc, self)
            for name, desc in description.get("properties", {}).items()
        }
        self.actions = {
            name: Action(name, desc, self)
            for name, desc in description.get("actions", {}).items()
        }
        self.events = {
            name: Event(name, desc, self)
            for name, desc in description.get("events", {}).items()
        }

    def __repr__(self) -> str:
        return f"<Device {self.id!r} {self.title!r}>"

    @property
    def id(self) -> str:
        """Last path segment of the description's ``id`` (or ``href``)."""
        ref = self.description.get("id") or self.description.get("href")
        if not ref:
            raise WebThingsClientError("Device description has no id")
        return ref.rstrip("/").rsplit("/", 1)[-1]

    @property
    def title(self) -> str | None:
        return self.description.get("title")

    @property
    def types(self) -> list[str]:
        return list(self.description.get("@type", []))

    @property
    def links(self) -> list[Link]:
        return [Link.from_dict(link) for link in self.description.get("links", [])]

    def href(self) -> str:
        return self.description.get("href") or f"/things/{self.id}"
