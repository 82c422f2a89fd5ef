"""Connection discovery for a local WebThings gateway."""

from __future__ import annotations

import dataclasses
import logging
import ssl
from dataclasses import dataclass
from urllib.parse import quote

import aiohttp

from .errors import UnreachableError

_LOGGER = logging.getLogger(__name__)

DEFAULT_ADDRESS = "localhost"
DEFAULT_PLAIN_PORT = 8080
DEFAULT_SECURE_PORT = 4443
DEFAULT_PROBE_TIMEOUT = 5.0


@dataclass(frozen=True)
class ConnectionDescriptor:
    """Where and how to reach the gateway."""

    address: str
    port: int
    secure: bool
    skip_cert_validation: bool
    token: str = dataclasses.field(repr=False)

    @property
    def http_base_url(self) -> str:
        protocol = "https" if self.secure else "http"
        return f"{protocol}://{self.address}:{self.port}"

    @property
    def http_ssl(self) -> bool:
        """Value for aiohttp's ``ssl`` request argument."""
        return not self.skip_cert_validation

    def ws_url(self, port: int | None = None) -> str:
        """Streaming endpoint, authenticated through the ``jwt`` query parameter."""
        protocol = "wss" if self.secure else "ws"
        token = quote(self.token, safe="")
        return f"{protocol}://{self.address}:{port or self.port}/things?jwt={token}"

    def ws_ssl(self) -> ssl.SSLContext | None:
        """SSL context for the WebSocket, or None for plaintext."""
        if not self.secure:
            return None
        context = ssl.create_default_context()
        if self.skip_cert_validation:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context

    def with_strict_validation(self) -> ConnectionDescriptor:
        return dataclasses.replace(self, skip_cert_validation=False)


async def resolve_local(
    session: aiohttp.ClientSession,
    token: str,
    *,
    address: str = DEFAULT_ADDRESS,
    plain_port: int = DEFAULT_PLAIN_PORT,
    secure_port: int = DEFAULT_SECURE_PORT,
    timeout: float = DEFAULT_PROBE_TIMEOUT,
) -> ConnectionDescriptor:
    """Probe the plaintext port to decide between HTTP and HTTPS.

    A gateway with HTTPS enabled answers the plaintext port with a redirect.
    In that case the secure port is used and certificate validation is
    relaxed, since local gateways usually serve a self-signed certificate.
    Only the presence of a ``Location`` header is checked and both ports are
    fixed, so gateways configured differently must be described explicitly
    with a ``ConnectionDescriptor``.

    Raises:
        UnreachableError: If the probe request fails
    """
    url = f"http://{address}:{plain_port}"
    _LOGGER.debug("Probing %s", url)
    try:
        async with session.get(
            url,
            allow_redirects=False,
            timeout=aiohttp.ClientTimeout(total=timeout),
        ) as resp:
            redirected = bool(resp.headers.get("Location"))
    except TimeoutError as err:
        raise UnreachableError(f"Probe of {url} timed out") from err
    except (aiohttp.ClientError, OSError) as err:
        raise UnreachableError(f"Probe of {url} failed") from err

    if redirected:
        _LOGGER.info(
            "HTTPS seems to be active, using port %d instead of %d",
            secure_port,
            plain_port,
        )
        return ConnectionDescriptor(
            address=address,
            port=secure_port,
            secure=True,
            skip_cert_validation=True,
            token=token,
        )

    return ConnectionDescriptor(
        address=address,
        port=plain_port,
        secure=False,
        skip_cert_validation=False,
        token=token,
    )
