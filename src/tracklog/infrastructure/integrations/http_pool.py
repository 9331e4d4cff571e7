"""One process-wide httpx.AsyncClient for all Spotify traffic.

Hey future me - /recent and /now-playing are usually fired together by the page, and each
may also hit the token endpoint. Reusing a single client keeps the TLS sessions to
accounts.spotify.com and api.spotify.com warm; a client per request would redo the
handshake every time.

    client = await HttpClientPool.get_client(timeout=12.0)

The lifespan in infrastructure/lifecycle.py calls HttpClientPool.close() on shutdown.
"""

import asyncio
import logging
from typing import ClassVar

import httpx

logger = logging.getLogger(__name__)

# Two upstream hosts, a handful of concurrent browser requests each. Plenty of headroom.
KEEPALIVE_CONNECTIONS = 10
MAX_CONNECTIONS = 40


def _build_client(timeout: float) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout),
        limits=httpx.Limits(
            max_keepalive_connections=KEEPALIVE_CONNECTIONS,
            max_connections=MAX_CONNECTIONS,
        ),
        http2=True,
    )


class HttpClientPool:
    """Lazily created shared client, guarded by an asyncio.Lock.

    The timeout passed to the first get_client() sticks; it is the per-phase httpx
    timeout, SpotifyClient puts its own overall deadline on top (asyncio.wait_for).
    """

    _client: ClassVar[httpx.AsyncClient | None] = None
    _lock: ClassVar[asyncio.Lock | None] = None

    DEFAULT_TIMEOUT: ClassVar[float] = 12.0

    @classmethod
    def _guard(cls) -> asyncio.Lock:
        # Created on first use so it binds to the serving loop, not the importing one.
        if cls._lock is None:
            cls._lock = asyncio.Lock()
        return cls._lock

    @classmethod
    async def get_client(cls, timeout: float | None = None) -> httpx.AsyncClient:
        """Return the shared client, creating it on the first call."""
        async with cls._guard():
            if cls._client is None:
                effective = timeout or cls.DEFAULT_TIMEOUT
                cls._client = _build_client(effective)
                logger.info("Spotify HTTP client created (timeout %.1fs)", effective)
            return cls._client

    @classmethod
    async def close(cls) -> None:
        """Close the shared client; the next get_client() starts a new one."""
        async with cls._guard():
            client, cls._client = cls._client, None
            if client is not None:
                await client.aclose()
                logger.info("Spotify HTTP client closed")

        # Bound to a loop that may be gone after shutdown (TestClient, reload).
        cls._lock = None

    @classmethod
    def is_initialized(cls) -> bool:
        return cls._client is not None
