"""
HTTP transport layer. The API client only depends on the small `HttpTransport`
protocol, so the aiohttp-backed implementation can be swapped out (for tests
or for an alternative session policy).
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Mapping, Optional, Protocol

import aiohttp

from bili_cli.exceptions import TransportError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransportResponse:
    """Status code and raw body of a completed HTTP exchange."""

    status: int
    body: bytes

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


class HttpTransport(Protocol):
    async def request(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Optional[bytes] = None,
    ) -> TransportResponse: ...

    async def close(self) -> None: ...


class AiohttpTransport:
    """
    Pooled aiohttp implementation of `HttpTransport`.

    The session is created lazily on the first request so the transport can be
    constructed outside of a running event loop.
    """

    def __init__(
        self,
        max_connections: int = 16,
        timeout_total: float = 30,
        timeout_connect: float = 10,
    ):
        """
        Args:
            max_connections: Upper bound for the connection pool.
            timeout_total: Total timeout in seconds for a single request.
            timeout_connect: Timeout in seconds for establishing a connection.
        """
        self.max_connections = max_connections
        self._timeout = aiohttp.ClientTimeout(
            total=timeout_total, connect=timeout_connect
        )
        self._session: Optional[aiohttp.ClientSession] = None

    async def _initialize_session(self) -> aiohttp.ClientSession:
        """Ensures an active aiohttp session is available."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=self.max_connections,
                ttl_dns_cache=300,
                enable_cleanup_closed=True,
            )
            # Cookies are sent explicitly per request, never accumulated.
            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=self._timeout,
                cookie_jar=aiohttp.DummyCookieJar(),
                headers={"Accept-Encoding": "gzip, deflate"},
            )
        return self._session

    async def request(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Optional[bytes] = None,
    ) -> TransportResponse:
        session = await self._initialize_session()
        start_time = time.monotonic()
        try:
            async with session.request(
                method, url, headers=dict(headers), data=body
            ) as r:
                payload = await r.read()
                duration_ms = (time.monotonic() - start_time) * 1000
                log.debug(f"{method} {url.split('?')[0]} -> {r.status} ({duration_ms:.0f} ms)")
                return TransportResponse(status=r.status, body=payload)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(f"{method} {url} failed: {e!r}") from e

    async def close(self) -> None:
        """Gracefully closes the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()
