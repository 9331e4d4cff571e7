"""Main entry point for the tracklog gateway."""

import logging
import sys

import uvicorn
from fastapi import FastAPI
from pydantic import ValidationError

from tracklog import __version__
from tracklog.api.cookies import SessionCookies
from tracklog.api.exception_handlers import register_exception_handlers
from tracklog.api.routers import gateway_router, health_router
from tracklog.application.services import (
    OAuthStateGuard,
    SessionCodec,
    SpotifyAuthService,
    TokenRefresher,
)
from tracklog.config import Settings, get_settings
from tracklog.infrastructure.integrations import SpotifyClient
from tracklog.infrastructure.lifecycle import lifespan
from tracklog.infrastructure.observability import RequestLoggingMiddleware, configure_logging
from tracklog.infrastructure.rate_limiter import FixedWindowRateLimiter, RateLimiterConfig
from tracklog.infrastructure.security import CookieCodec

logger = logging.getLogger(__name__)


# Hey future me - there's deliberately NO module-level `app = create_app()`. Building the app
# needs SPOTIFY_* and SESSION_SECRET; a module-level app would make a bare `import tracklog.main`
# blow up in tests and tooling. uvicorn gets the factory instead (see run()).
def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the FastAPI application and wire every component onto ``app.state``.

    Args:
        settings: Explicit settings (tests); defaults to ``get_settings()``

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Spotify listening-history gateway with sealed cookie sessions",
        version=__version__,
        lifespan=lifespan,
    )

    # One codec, one key: the signed state cookie and the sealed session share SESSION_SECRET.
    cookie_codec = CookieCodec(settings.session.secret)
    spotify_client = SpotifyClient(settings.spotify)
    auth_service = SpotifyAuthService(spotify_client)

    app.state.settings = settings
    app.state.cookie_codec = cookie_codec
    app.state.cookies = SessionCookies(settings.session, secure=settings.secure_cookies)
    app.state.state_guard = OAuthStateGuard(cookie_codec)
    app.state.session_codec = SessionCodec(cookie_codec)
    app.state.spotify_client = spotify_client
    app.state.auth_service = auth_service
    app.state.token_refresher = TokenRefresher(
        auth_service,
        renewal_margin_ms=settings.session.renewal_margin_ms,
    )
    app.state.rate_limiter = FixedWindowRateLimiter(
        RateLimiterConfig(
            window_seconds=settings.rate_limit.window_seconds,
            capacity=settings.rate_limit.capacity,
            max_buckets=settings.rate_limit.max_buckets,
        )
    )

    app.add_middleware(RequestLoggingMiddleware)
    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(gateway_router)

    return app


def run() -> None:
    """Console entry point: validate configuration, then serve with uvicorn."""
    try:
        settings = get_settings()
    except ValidationError as e:
        # Logging isn't configured yet (that needs settings) - use the defaults.
        configure_logging()
        logger.error("Invalid configuration, refusing to start:\n%s", e)
        sys.exit(1)

    uvicorn.run(
        "tracklog.main:create_app",
        factory=True,
        host=settings.api.host,
        port=settings.api.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
