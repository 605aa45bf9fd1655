"""
HTTP transport for crate downloads.

The archive code only needs "GET this URL and give me the body"; redirects
are followed and any non-2xx status is a transport failure.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import aiohttp

from cratemirror import __version__
from cratemirror.errors import FetchError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = f"cratemirror/{__version__}"


class Fetcher(ABC):
    """Abstract byte fetcher."""

    @abstractmethod
    async def get(self, url: str) -> bytes:
        """
        Download ``url`` and return the full response body.

        Raises:
            FetchError: On network failure or a non-success status.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release any held connections."""
        ...


class AiohttpFetcher(Fetcher):
    """Fetcher backed by a single reused aiohttp session."""

    def __init__(
        self,
        timeout_s: float = 60.0,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self._timeout_s = timeout_s
        self._user_agent = user_agent
        self._session: aiohttp.ClientSession | None = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self._timeout_s)
            self._session = aiohttp.ClientSession(
                timeout=timeout,
                headers={"User-Agent": self._user_agent},
            )
        return self._session

    async def get(self, url: str) -> bytes:
        session = await self._get_session()
        try:
            async with session.get(url, allow_redirects=True) as response:
                if not 200 <= response.status < 300:
                    raise FetchError(f"Error downloading {url}: HTTP {response.status}")
                return await response.read()
        except (aiohttp.ClientError, TimeoutError) as e:
            logger.error("Download failed", extra={"url": url, "error": str(e)})
            raise FetchError(f"Error downloading {url}: {e}") from e

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> AiohttpFetcher:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
