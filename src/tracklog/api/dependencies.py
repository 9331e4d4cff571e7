"""Dependency injection for API endpoints.

Every component is built once in ``create_app()`` and parked on ``app.state``; the
getters below just hand them to the routes.
"""

import logging
from typing import cast

from fastapi import Depends, HTTPException, Request, Response

from tracklog.api.cookies import SessionCookies
from tracklog.application.services import (
    OAuthStateGuard,
    SessionCodec,
    SpotifyAuthService,
    TokenRefresher,
)
from tracklog.config import Settings
from tracklog.domain.exceptions import AuthenticationError, RateLimitExceededError
from tracklog.infrastructure.integrations import SpotifyClient
from tracklog.infrastructure.rate_limiter import FixedWindowRateLimiter, client_identity

logger = logging.getLogger(__name__)


def _from_state(request: Request, name: str) -> object:
    component = getattr(request.app.state, name, None)
    if component is None:
        # Only reachable if create_app() was bypassed
        raise HTTPException(status_code=503, detail=f"{name} not initialized")
    return component


def get_app_settings(request: Request) -> Settings:
    return cast(Settings, _from_state(request, "settings"))


def get_session_cookies(request: Request) -> SessionCookies:
    return cast(SessionCookies, _from_state(request, "cookies"))


def get_state_guard(request: Request) -> OAuthStateGuard:
    return cast(OAuthStateGuard, _from_state(request, "state_guard"))


def get_session_codec(request: Request) -> SessionCodec:
    return cast(SessionCodec, _from_state(request, "session_codec"))


def get_auth_service(request: Request) -> SpotifyAuthService:
    return cast(SpotifyAuthService, _from_state(request, "auth_service"))


def get_token_refresher(request: Request) -> TokenRefresher:
    return cast(TokenRefresher, _from_state(request, "token_refresher"))


def get_spotify_client(request: Request) -> SpotifyClient:
    return cast(SpotifyClient, _from_state(request, "spotify_client"))


def get_rate_limiter(request: Request) -> FixedWindowRateLimiter:
    return cast(FixedWindowRateLimiter, _from_state(request, "rate_limiter"))


# Hey future me - this runs FIRST on every gateway route (router-level dependency), before the
# session cookie is even looked at. A rejected request never reaches Spotify or the crypto.
def enforce_rate_limit(
    request: Request,
    limiter: FixedWindowRateLimiter = Depends(get_rate_limiter),
) -> None:
    """Count the request against its client's window.

    Raises:
        RateLimitExceededError: Budget for the current window is used up (→ 429)
    """
    identity = client_identity(request)
    decision = limiter.admit(identity)
    if not decision.allowed:
        raise RateLimitExceededError(decision.retry_after_seconds, identity=identity)


async def require_access_token(
    request: Request,
    response: Response,
    codec: SessionCodec = Depends(get_session_codec),
    refresher: TokenRefresher = Depends(get_token_refresher),
    cookies: SessionCookies = Depends(get_session_cookies),
) -> str:
    """Resolve the session cookie to a usable Spotify access token.

    When the token had to be refreshed, the re-sealed record is written to ``response``
    (merged into the route's response by FastAPI) and stashed on
    ``request.state.refreshed_session`` so the error handlers can still send it if the
    data call fails afterwards.

    Returns:
        Bearer token for the Spotify Web API

    Raises:
        AuthenticationError: No usable session (→ 401)
        TokenRefreshException: Refresh call failed (→ 500, session cleared)
    """
    raw = request.cookies.get(cookies.session_name)
    record = codec.decode(raw)
    if record is None:
        # A cookie we can't open will never open - tell the browser to drop it.
        raise AuthenticationError(clear_session=bool(raw))

    result = await refresher.ensure_access(record)
    if result.access_token is None:
        raise AuthenticationError(clear_session=result.clear_session)

    if result.record is not None:
        sealed = codec.encode(result.record)
        cookies.set_session(response, sealed)
        request.state.refreshed_session = sealed
        logger.info("Access token refreshed, session cookie re-sealed")

    return result.access_token
