"""Application lifecycle management for startup and shutdown tasks.

Nothing here runs per request. Components themselves are built in ``create_app()``
(so tests can drive the app without entering the lifespan); the lifespan only owns
process-level concerns: logging setup and closing the shared HTTP connection pool.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from tracklog.config import Settings, get_settings
from tracklog.infrastructure.integrations.http_pool import HttpClientPool
from tracklog.infrastructure.observability import configure_logging

logger = logging.getLogger(__name__)


# Listen future me, @asynccontextmanager makes this a CONTEXT MANAGER for FastAPI lifespan!
# Everything before `yield` runs at STARTUP, everything after runs at SHUTDOWN. The try/finally
# makes sure the pooled httpx client is closed even if the server dies mid-flight, otherwise
# uvicorn complains about unclosed transports on reload.
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles:
    - Logging configuration
    - HTTP client pool cleanup on shutdown
    """
    settings: Settings = getattr(app.state, "settings", None) or get_settings()

    configure_logging(
        log_level=settings.log_level,
        json_format=settings.observability.log_json_format,
        app_name=settings.app_name,
    )
    logger.info(
        "Starting application: %s (%s, secure cookies: %s)",
        settings.app_name,
        settings.environment,
        settings.secure_cookies,
    )

    try:
        yield
    finally:
        logger.info("Shutting down application")
        try:
            await HttpClientPool.close()
            logger.info("HTTP client pool closed")
        except Exception as e:
            logger.exception("Error closing HTTP client pool: %s", e)
