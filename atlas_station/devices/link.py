"""
HTTP exchange with device control surfaces.

Rotator controllers and the relay web switch expose plain-text GET
endpoints. Every exchange is best effort: failures are logged and
reported as an empty result, never raised to the caller.
"""

import asyncio
import logging
from typing import Optional

import httpx

logger = logging.getLogger("atlas.station.devices.link")


def device_url(address: str, path: str) -> str:
    """Build a device URL, defaulting to plain HTTP for bare host addresses."""
    base = address.rstrip("/")
    if "://" not in base:
        base = f"http://{base}"
    return f"{base}/{path.lstrip('/')}"


class DeviceLink:
    """
    Request/response exchange with a device's HTTP control surface.

    Provides:
    - exchange(): text body or "" on failure
    - fetch(): binary body or b"" on failure
    - fire(): detached exchange whose result is discarded
    """

    def __init__(
        self,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the device link.

        Args:
            timeout: Per-request timeout in seconds
            transport: Optional transport override (used by tests)
        """
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)
        self._background: set[asyncio.Task] = set()

    async def close(self) -> None:
        """Wait for detached exchanges and release the HTTP client."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
        await self._client.aclose()

    async def _get(self, url: str) -> Optional[httpx.Response]:
        try:
            resp = await self._client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("HTTP GET %s failed: %s", url, e)
            return None

        if resp.status_code != 200:
            logger.warning("HTTP GET %s returned status %d", url, resp.status_code)
            return None
        return resp

    async def exchange(self, url: str) -> str:
        """
        Perform a single GET and return the response text.

        Returns:
            Response body, or "" on transport error or non-200 status
        """
        resp = await self._get(url)
        if resp is None:
            return ""
        try:
            return resp.text
        except (UnicodeDecodeError, LookupError) as e:
            logger.warning("HTTP GET %s returned undecodable body: %s", url, e)
            return ""

    async def fetch(self, url: str) -> bytes:
        """Perform a single GET and return the raw body, or b"" on failure."""
        resp = await self._get(url)
        if resp is None:
            return b""
        return resp.content

    def fire(self, url: str) -> asyncio.Task:
        """
        Start a detached exchange.

        The reply is intentionally discarded; failures are only logged by
        exchange(). The task is referenced until it completes.
        """
        task = asyncio.create_task(self.exchange(url))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task
