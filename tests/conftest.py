"""Pytest configuration and fixtures for webthings_client tests."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from webthings_client.discovery import ConnectionDescriptor


@pytest.fixture
def mock_session() -> MagicMock:
    """Create a mock aiohttp ClientSession."""
    import aiohttp

    return MagicMock(spec=aiohttp.ClientSession)


@pytest.fixture
def descriptor() -> ConnectionDescriptor:
    """Plaintext descriptor for a gateway on the LAN."""
    return ConnectionDescriptor(
        address="192.168.1.100",
        port=8080,
        secure=False,
        skip_cert_validation=False,
        token="test-token",
    )


def create_mock_response(
    status: int = 200,
    json_data: Any = None,
    headers: dict[str, str] | None = None,
    reason: str = "OK",
) -> AsyncMock:
    """Create a configured mock response.

    Args:
        status: HTTP status code
        json_data: Data to return from json() call
        headers: Response headers
        reason: HTTP status text

    Returns:
        Configured AsyncMock response
    """
    response = AsyncMock()
    response.status = status
    response.reason = reason
    response.headers = headers if headers is not None else {}
    response.json.return_value = json_data

    response.__aenter__.return_value = response
    response.__aexit__.return_value = None

    return response


def json_response(json_data: Any, status: int = 200) -> AsyncMock:
    """Create a mock response carrying a JSON body."""
    return create_mock_response(
        status=status,
        json_data=json_data,
        headers={"Content-Type": "application/json; charset=utf-8"},
    )


class AsyncIteratorMock:
    """Async iterator standing in for a websockets connection."""

    def __init__(self, items: list, *, raise_on_iter: Exception | None = None):
        self._items = items
        self._index = 0
        self._raise_on_iter = raise_on_iter
        self.close = AsyncMock()
        self.send = AsyncMock()

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self._raise_on_iter is not None:
            raise self._raise_on_iter
        if self._index >= len(self._items):
            raise StopAsyncIteration
        item = self._items[self._index]
        self._index += 1
        return item
