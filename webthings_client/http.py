"""HTTP request executor for WebThings gateway endpoints."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Final

import aiohttp

from .discovery import ConnectionDescriptor
from .errors import (
    HttpStatusError,
    UnexpectedContentTypeError,
    WebThingsClientError,
    WebThingsConnectionError,
    WebThingsTimeout,
)

JSON_CONTENT_TYPE: Final = "application/json"
RAW_CONTENT_TYPE: Final = "text/plain; charset=utf-8"
METHODS: Final = frozenset({"GET", "PUT", "POST", "DELETE"})

DEFAULT_REQUEST_TIMEOUT = 10.0


@dataclass(frozen=True)
class RequestSpec:
    """One request/response call against the gateway."""

    method: str
    path: str
    body: Any = None
    has_body: bool = False
    body_is_raw: bool = False
    expect_no_content: bool = False

    def __post_init__(self) -> None:
        if self.method not in METHODS:
            raise ValueError(f"Unsupported method: {self.method}")
        if self.method == "GET" and self.has_body:
            raise ValueError("GET requests cannot carry a body")

    @classmethod
    def get(cls, path: str) -> RequestSpec:
        return cls("GET", path)

    @classmethod
    def put(cls, path: str, value: Any = None) -> RequestSpec:
        return cls("PUT", path, value, has_body=True)

    @classmethod
    def post(cls, path: str, value: Any = None) -> RequestSpec:
        return cls("POST", path, value, has_body=True)

    @classmethod
    def delete(cls, path: str) -> RequestSpec:
        # The gateway expects an empty string payload rather than no payload.
        return cls(
            "DELETE",
            path,
            "",
            has_body=True,
            body_is_raw=True,
            expect_no_content=True,
        )

    @property
    def content_type(self) -> str | None:
        if not self.has_body:
            return None
        return RAW_CONTENT_TYPE if self.body_is_raw else JSON_CONTENT_TYPE

    def encode_body(self) -> str | None:
        if not self.has_body:
            return None
        if self.body_is_raw:
            return "" if self.body is None else str(self.body)
        return json.dumps(self.body)


class WebThingsHttpClient:
    """HTTP client wrapper for WebThings gateway endpoints."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        descriptor: ConnectionDescriptor,
        *,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        self._session = session
        self._descriptor = descriptor
        self._timeout = timeout

    def _url(self, path: str) -> str:
        return f"{self._descriptor.http_base_url}{path}"

    def _headers(self, spec: RequestSpec) -> dict[str, str]:
        headers = {
            "Accept": JSON_CONTENT_TYPE,
            "Authorization": f"Bearer {self._descriptor.token}",
        }
        content_type = spec.content_type
        if content_type is not None:
            headers["Content-Type"] = content_type
        return headers

    async def execute(self, spec: RequestSpec) -> Any | None:
        """Send one request and return its decoded JSON body.

        Returns None when the response is not JSON and the request expected
        no content.

        Raises:
            HttpStatusError: If the status is outside the 2xx range
            UnexpectedContentTypeError: If JSON was expected but not returned
            WebThingsTimeout: If the request times out
            WebThingsConnectionError: If the network request fails
        """
        url = self._url(spec.path)
        try:
            async with self._session.request(
                spec.method,
                url,
                headers=self._headers(spec),
                data=spec.encode_body(),
                ssl=self._descriptor.http_ssl,
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as resp:
                if resp.status < 200 or resp.status >= 300:
                    raise HttpStatusError(resp.status, resp.reason or "")

                content_type = resp.headers.get("Content-Type", "")
                if JSON_CONTENT_TYPE not in content_type:
                    if spec.expect_no_content:
                        return None
                    raise UnexpectedContentTypeError(content_type)

                try:
                    return await resp.json(content_type=None)
                except ValueError as err:
                    raise WebThingsClientError(
                        f"{spec.method} {spec.path} returned invalid JSON"
                    ) from err
        except TimeoutError as err:
            raise WebThingsTimeout(f"{spec.method} {spec.path} timed out") from err
        except aiohttp.ClientError as err:
            raise WebThingsConnectionError(
                f"{spec.method} {spec.path} failed"
            ) from err

    async def get(self, path: str) -> Any | None:
        return await self.execute(RequestSpec.get(path))

    async def put(self, path: str, value: Any = None) -> Any | None:
        return await self.execute(RequestSpec.put(path, value))

    async def post(self, path: str, value: Any = None) -> Any | None:
        return await self.execute(RequestSpec.post(path, value))

    async def delete(self, path: str) -> None:
        await self.execute(RequestSpec.delete(path))
