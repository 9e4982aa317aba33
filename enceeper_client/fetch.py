"""
HTTP transport for the Enceeper service.
"""
import asyncio
import logging
from typing import Optional, Protocol

import aiohttp

from .exceptions import NetworkError, RemoteApiError

logger = logging.getLogger("enceeper.slots")


class Fetcher(Protocol):
    async def fetch(self, url: str) -> bytes:
        ...


class HTTPFetcher:
    """GET a URL with aiohttp.

    Non-2xx answers raise ``RemoteApiError`` carrying the status code;
    timeouts and connection failures raise ``NetworkError``.
    """

    def __init__(self, timeout: int = 10, session: Optional[aiohttp.ClientSession] = None):
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session

    async def fetch(self, url: str) -> bytes:
        if self._session is not None:
            return await self._get(self._session, url)
        async with aiohttp.ClientSession() as session:
            return await self._get(session, url)

    async def _get(self, session: aiohttp.ClientSession, url: str) -> bytes:
        logger.debug("GET %s", url)
        try:
            async with session.get(url, timeout=self._timeout) as response:
                body = await response.read()
                if not 200 <= response.status < 300:
                    version = response.version
                    raise RemoteApiError(
                        response.status,
                        f"HTTP/{version.major}.{version.minor} "
                        f"{response.status} {response.reason}",
                    )
                return body
        except (aiohttp.ClientError, asyncio.TimeoutError) as err:
            raise NetworkError("Request Timed Out") from err
