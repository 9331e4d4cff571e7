"""Spotify HTTP client: token endpoint and the two player endpoints we read."""

import asyncio
import base64
import logging
from typing import Any, cast
from urllib.parse import urlencode

import httpx

from tracklog.config.settings import SpotifySettings
from tracklog.domain.exceptions import (
    ConfigurationError,
    ExternalServiceError,
    TokenRefreshException,
)
from tracklog.infrastructure.integrations.http_pool import HttpClientPool

logger = logging.getLogger(__name__)

# Upstream bodies can be large HTML error pages; keep logs readable.
_MAX_LOGGED_BODY = 500


class SpotifyClient:
    """HTTP client for Spotify accounts + Web API calls.

    Every call is bounded by ``settings.timeout_seconds`` as a whole (asyncio.wait_for),
    not just per socket operation, so a slow-dripping upstream can't pin a request.
    A timeout is an ExternalServiceError like any other upstream failure - no retries.
    """

    # Hey future me, we DON'T create the httpx client here - it's lazy-loaded from the shared
    # pool inside the running event loop. Tests pass their own client instead.
    def __init__(
        self,
        settings: SpotifySettings,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize Spotify client.

        Args:
            settings: Spotify configuration settings
            client: Optional httpx client (defaults to the shared HttpClientPool client)
        """
        self.settings = settings
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get the injected client or the shared pool client."""
        # Not cached: the pool client is replaced after HttpClientPool.close().
        if self._client is not None:
            return self._client
        return await HttpClientPool.get_client(timeout=self.settings.timeout_seconds)

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send one request under the overall deadline.

        Raises:
            ExternalServiceError: On timeout or transport failure
        """
        client = await self._get_client()
        try:
            response = await asyncio.wait_for(
                client.request(method, url, **kwargs),
                timeout=self.settings.timeout_seconds,
            )
        except (TimeoutError, httpx.TimeoutException) as exc:
            raise ExternalServiceError(
                f"spotify request timed out after {self.settings.timeout_seconds:.0f}s: {method} {url}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ExternalServiceError(f"spotify request failed: {method} {url}: {exc}") from exc

        logger.debug("Spotify %s %s -> %d", method, url, response.status_code)
        return response

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        return f"{response.status_code} {response.text[:_MAX_LOGGED_BODY]}"

    @staticmethod
    def _json(response: httpx.Response, what: str) -> dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as exc:
            raise ExternalServiceError(f"spotify {what}: invalid JSON body") from exc
        if not isinstance(payload, dict):
            raise ExternalServiceError(f"spotify {what}: expected a JSON object")
        return cast(dict[str, Any], payload)

    # -------------------------------------------------------------------------
    # OAuth (accounts.spotify.com)
    # -------------------------------------------------------------------------

    # Listen future me, this builds the URL we redirect the browser to. Scopes are MINIMAL (read
    # recently played + currently playing). show_dialog=true forces the consent screen even if the
    # user already approved us - that's how "switch account" works. The state param is the CSRF
    # guard; it MUST come back unchanged on /callback.
    def build_authorization_url(self, state: str, show_dialog: bool = False) -> str:
        """
        Build the Spotify authorization URL.

        Args:
            state: CSRF state (raw, unsigned)
            show_dialog: Force the consent dialog (account switching)

        Returns:
            Authorization URL

        Raises:
            ConfigurationError: If client_id or redirect_uri is empty
        """
        if not self.settings.client_id.strip():
            raise ConfigurationError("SPOTIFY_CLIENT_ID is not configured")
        if not self.settings.redirect_uri.strip():
            raise ConfigurationError("SPOTIFY_REDIRECT_URI is not configured")

        params = {
            "response_type": "code",
            "client_id": self.settings.client_id,
            "scope": self.settings.scopes,
            "redirect_uri": self.settings.redirect_uri,
            "state": state,
        }
        if show_dialog:
            params["show_dialog"] = "true"

        return f"{self.settings.authorize_url}?{urlencode(params)}"

    def _basic_auth_header(self) -> str:
        raw = f"{self.settings.client_id}:{self.settings.client_secret}".encode()
        return f"Basic {base64.b64encode(raw).decode('ascii')}"

    async def _post_token(self, data: dict[str, str]) -> httpx.Response:
        return await self._send(
            "POST",
            self.settings.token_url,
            data=data,
            headers={
                "Authorization": self._basic_auth_header(),
                "Content-Type": "application/x-www-form-urlencoded",
            },
        )

    # Yo future me, the code is single-use and expires in ~10 minutes. redirect_uri MUST match
    # the one in the authorization URL byte for byte or Spotify answers invalid_grant.
    async def exchange_code(self, code: str) -> dict[str, Any]:
        """
        Exchange an authorization code for tokens.

        Args:
            code: Authorization code from the callback

        Returns:
            Token response with access_token, refresh_token, expires_in

        Raises:
            ExternalServiceError: On any non-success response or transport failure
        """
        response = await self._post_token(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.settings.redirect_uri,
            }
        )
        if not response.is_success:
            raise ExternalServiceError(
                f"spotify token error: {self._error_detail(response)}",
                http_status=response.status_code,
            )
        return self._json(response, "token response")

    # Hey future me, Spotify MAY rotate the refresh token (then it's in the response) or not
    # (then it's absent and the old one stays valid). Callers keep the old one when absent.
    # 400 invalid_grant = revoked; we don't special-case it - every failure means fail closed.
    async def refresh_token(self, refresh_token: str) -> dict[str, Any]:
        """
        Refresh an access token.

        Args:
            refresh_token: Refresh token from the session

        Returns:
            Token response with access_token, expires_in and maybe refresh_token

        Raises:
            TokenRefreshException: On any failure (non-success, timeout, bad body)
        """
        try:
            response = await self._post_token(
                {"grant_type": "refresh_token", "refresh_token": refresh_token}
            )
            if not response.is_success:
                raise TokenRefreshException(
                    f"spotify refresh error: {self._error_detail(response)}",
                    http_status=response.status_code,
                )
            return self._json(response, "refresh response")
        except TokenRefreshException:
            raise
        except ExternalServiceError as exc:
            raise TokenRefreshException(exc.message, http_status=exc.http_status) from exc

    # -------------------------------------------------------------------------
    # Web API (api.spotify.com)
    # -------------------------------------------------------------------------

    async def _api_get(
        self,
        path: str,
        access_token: str,
        params: dict[str, Any] | None = None,
        allow_no_content: bool = False,
    ) -> dict[str, Any] | None:
        """GET a Web API resource with the bearer token.

        Returns:
            Parsed JSON object, or None for 204 when allow_no_content is set
        """
        response = await self._send(
            "GET",
            f"{self.settings.api_base_url}{path}",
            params=params,
            headers={"Authorization": f"Bearer {access_token}"},
        )

        if allow_no_content and response.status_code == 204:
            return None

        if not response.is_success:
            raise ExternalServiceError(
                f"spotify api error: {self._error_detail(response)}",
                http_status=response.status_code,
            )
        return self._json(response, f"api response for {path}")

    async def get_recently_played(self, access_token: str, limit: int = 20) -> dict[str, Any]:
        """
        Get the user's recently played tracks.

        Args:
            access_token: OAuth access token
            limit: Number of play history items (1-50)

        Returns:
            Paginated play history with ``items`` (each has played_at + track)
        """
        limit = max(1, min(limit, 50))
        result = await self._api_get(
            "/me/player/recently-played", access_token, params={"limit": limit}
        )
        return cast(dict[str, Any], result)

    # Listen up, 204 No Content means "nothing is playing" (or a private session). That's a
    # normal answer, not an error - hence allow_no_content.
    async def get_currently_playing(self, access_token: str) -> dict[str, Any] | None:
        """
        Get the track currently playing on the user's account.

        Args:
            access_token: OAuth access token

        Returns:
            Currently playing object, or None if nothing is playing
        """
        return await self._api_get(
            "/me/player/currently-playing", access_token, allow_no_content=True
        )

