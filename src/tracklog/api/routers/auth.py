"""Spotify login flow: /login, /callback, /logout.

Hey future me - the whole OAuth dance in three routes:
1. /login mints a random state, stores its SIGNED form in the oauth_state cookie, and
   bounces the browser to Spotify's consent page with the raw state in the URL.
2. Spotify redirects back to /callback?code=...&state=... - we only accept it if the
   state matches what the signed cookie says. No match = no token exchange, period.
3. The exchanged tokens get SEALED into the session cookie. No server-side session store.
"""

import logging

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import RedirectResponse

from tracklog.api.cookies import SessionCookies
from tracklog.api.dependencies import (
    get_auth_service,
    get_session_codec,
    get_session_cookies,
    get_state_guard,
)
from tracklog.application.services import OAuthStateGuard, SessionCodec, SpotifyAuthService
from tracklog.domain.clock import epoch_ms
from tracklog.domain.exceptions import InvalidCallbackError

logger = logging.getLogger(__name__)

router = APIRouter()

HOME_URL = "/"


@router.get("/login")
async def login(
    switch: str | None = Query(default=None, description="1 = force Spotify account picker"),
    guard: OAuthStateGuard = Depends(get_state_guard),
    auth_service: SpotifyAuthService = Depends(get_auth_service),
    cookies: SessionCookies = Depends(get_session_cookies),
) -> RedirectResponse:
    """Start the authorization-code flow.

    ``?switch=1`` adds ``show_dialog=true`` so Spotify shows the account chooser even
    when the browser is already logged in (switching accounts).
    """
    issued = guard.issue()
    url = auth_service.authorization_url(issued.state, show_dialog=switch == "1")

    response = RedirectResponse(url=url, status_code=status.HTTP_302_FOUND)
    cookies.set_state(response, issued.cookie_value)
    return response


@router.get("/callback")
async def callback(
    request: Request,
    code: str | None = Query(default=None),
    state: str | None = Query(default=None),
    guard: OAuthStateGuard = Depends(get_state_guard),
    auth_service: SpotifyAuthService = Depends(get_auth_service),
    session_codec: SessionCodec = Depends(get_session_codec),
    cookies: SessionCookies = Depends(get_session_cookies),
) -> RedirectResponse:
    """Finish the flow: verify state, exchange code, seal the session.

    Raises:
        InvalidCallbackError: State missing/mismatched or no code (→ 400)
        ExternalServiceError: Token exchange failed (→ 500)
    """
    # Spotify sends ?error=access_denied instead of a code when the user clicks "cancel".
    # That lands here too: no code means nothing to exchange.
    if not guard.verify(request.cookies.get(cookies.state_name), state):
        raise InvalidCallbackError("state mismatch")
    if not code:
        raise InvalidCallbackError("missing authorization code")

    tokens = await auth_service.exchange_code(code)
    record = tokens.to_record(epoch_ms())

    response = RedirectResponse(url=HOME_URL, status_code=status.HTTP_302_FOUND)
    cookies.set_session(response, session_codec.encode(record))
    cookies.clear_state(response)
    logger.info("Spotify login completed")
    return response


@router.get("/logout")
async def logout(
    cookies: SessionCookies = Depends(get_session_cookies),
) -> RedirectResponse:
    """Drop both cookies. Nothing server-side to revoke."""
    response = RedirectResponse(url=HOME_URL, status_code=status.HTTP_302_FOUND)
    cookies.clear_all(response)
    return response
