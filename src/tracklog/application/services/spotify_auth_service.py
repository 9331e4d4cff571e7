"""Spotify OAuth Authentication Service.

Hey future me - this wraps SpotifyClient's raw token endpoint calls and turns the JSON into
TokenResult / CredentialRecord. Routers and the TokenRefresher never touch token JSON.

OAuth Flow:
1. authorization_url() -> redirect target for /login
2. User grants access, Spotify redirects to /callback?code&state
3. exchange_code() -> first CredentialRecord
4. refresh() -> new tokens when the access token goes stale

This service is stateless. Where the credentials live (the sealed cookie) is the
gateway's business.
"""

import logging
from dataclasses import dataclass
from typing import Any

from tracklog.domain.entities import CredentialRecord
from tracklog.domain.exceptions import ExternalServiceError, TokenRefreshException
from tracklog.infrastructure.integrations.spotify_client import SpotifyClient

logger = logging.getLogger(__name__)

DEFAULT_EXPIRES_IN = 3600


@dataclass(frozen=True)
class TokenResult:
    """Result of token operations.

    Hey future me - refresh_token is None on most refreshes! Spotify only sends one
    when it rotates it.
    """

    access_token: str
    refresh_token: str | None
    expires_in: int
    token_type: str
    scope: str | None

    @classmethod
    def from_response(cls, payload: dict[str, Any]) -> "TokenResult":
        """Normalize a token endpoint response.

        Raises:
            ValueError: If access_token is missing
        """
        access_token = payload.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise ValueError("token response has no access_token")

        expires_in = payload.get("expires_in")
        if isinstance(expires_in, bool) or not isinstance(expires_in, int) or expires_in <= 0:
            expires_in = DEFAULT_EXPIRES_IN

        refresh_token = payload.get("refresh_token")
        return cls(
            access_token=access_token,
            refresh_token=refresh_token if isinstance(refresh_token, str) and refresh_token else None,
            expires_in=expires_in,
            token_type=payload.get("token_type", "Bearer"),
            scope=payload.get("scope"),
        )

    def to_record(self, now_ms: int) -> CredentialRecord:
        """Build the first credential record after the code exchange."""
        return CredentialRecord(
            access_token=self.access_token,
            refresh_token=self.refresh_token,
            expires_at=now_ms + self.expires_in * 1000,
        )


class SpotifyAuthService:
    """Service for Spotify OAuth authentication."""

    def __init__(self, client: SpotifyClient) -> None:
        self._client = client

    def authorization_url(self, state: str, show_dialog: bool = False) -> str:
        """Build the authorize URL for a given CSRF state."""
        return self._client.build_authorization_url(state, show_dialog=show_dialog)

    async def exchange_code(self, code: str) -> TokenResult:
        """Exchange an authorization code for tokens.

        Raises:
            ExternalServiceError: If Spotify rejects the code or answers garbage
        """
        payload = await self._client.exchange_code(code)
        try:
            result = TokenResult.from_response(payload)
        except ValueError as exc:
            raise ExternalServiceError(f"spotify token error: {exc}") from exc

        logger.info("Exchanged authorization code for tokens (scope=%s)", result.scope)
        return result

    async def refresh(self, refresh_token: str) -> TokenResult:
        """Refresh an access token.

        Raises:
            TokenRefreshException: On any refresh failure
        """
        payload = await self._client.refresh_token(refresh_token)
        try:
            result = TokenResult.from_response(payload)
        except ValueError as exc:
            raise TokenRefreshException(f"spotify refresh error: {exc}") from exc

        logger.debug(
            "Refreshed access token (refresh token rotated: %s)",
            result.refresh_token is not None,
        )
        return result
