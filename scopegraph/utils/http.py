"""Pooled aiohttp client shared by every discovery plugin in a session."""

from __future__ import annotations

import logging
import ssl
from typing import TYPE_CHECKING, Any

import aiohttp

if TYPE_CHECKING:
    from scopegraph.config import HttpSettings

logger = logging.getLogger(__name__)


class AsyncHttpClient:
    """One connection pool per session, opened on first request.

    Usage:
        async with AsyncHttpClient.from_settings(settings.http) as http:
            page = await http.fetch_text("https://rapiddns.io/subdomain/example.com?full=1")
    """

    def __init__(
        self,
        timeout: float = 15.0,
        max_connections: int = 100,
        max_per_host: int = 10,
        user_agent: str = "Mozilla/5.0 (compatible; scopegraph/1.0)",
        verify_ssl: bool = True,
    ):
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.user_agent = user_agent
        self.verify_ssl = verify_ssl
        self.max_connections = max_connections
        self.max_per_host = max_per_host
        self._session: aiohttp.ClientSession | None = None

    @classmethod
    def from_settings(cls, settings: HttpSettings) -> AsyncHttpClient:
        return cls(
            timeout=settings.timeout,
            max_connections=settings.max_connections,
            max_per_host=settings.max_connections_per_host,
            user_agent=settings.user_agent,
            verify_ssl=settings.verify_ssl,
        )

    def _ssl(self) -> ssl.SSLContext | bool:
        if self.verify_ssl:
            return True
        ctx = ssl.create_default_context()
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
        return ctx

    async def _pool(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                connector=aiohttp.TCPConnector(
                    limit=self.max_connections,
                    limit_per_host=self.max_per_host,
                    ssl=self._ssl(),
                ),
                timeout=self.timeout,
                headers={"User-Agent": self.user_agent},
            )
        return self._session

    async def fetch_text(self, url: str, **kwargs: Any) -> str | None:
        """Body of a 200 response, or None for any other status or a network error."""
        session = await self._pool()
        try:
            async with session.get(url, **kwargs) as resp:
                if resp.status != 200:
                    logger.debug("GET %s -> HTTP %d", url, resp.status)
                    return None
                return await resp.text(errors="replace")
        except (aiohttp.ClientError, TimeoutError) as e:
            logger.debug("GET %s failed: %s", url, e)
            return None

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> AsyncHttpClient:
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()
