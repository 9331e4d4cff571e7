"""Lazy access-token renewal for the sealed session.

Hey future me - this is where "logged in" gets decided on every data request!

Rules:
- Token counts as stale 30s BEFORE its nominal expiry (renewal margin). Spotify tokens
  live 1h; refreshing a bit early beats a 401 from the data endpoint mid-request.
- Stale + no refresh token → not_authenticated, and the cookie gets cleared. No network.
- Stale + refresh token → one call to the token endpoint, new record for the cookie.
- Refresh failed → TokenRefreshException bubbles up; the gateway clears the session
  and answers 500. We never retry with a possibly-revoked token.

SINGLE-FLIGHT:
Two requests (say /recent and /now-playing fired together by the page) often arrive with
the SAME stale cookie. Without coordination both would hit the token endpoint, and a
provider that rotates refresh tokens could reject the second one. So concurrent refreshes
of the same refresh token share one in-flight call and all get its result. Last cookie
write still wins, but both writes carry equally valid credentials.
"""

import asyncio
import logging

from collections.abc import Callable
from dataclasses import dataclass

from tracklog.application.services.spotify_auth_service import SpotifyAuthService, TokenResult
from tracklog.domain.clock import epoch_ms
from tracklog.domain.entities import CredentialRecord

logger = logging.getLogger(__name__)

NOT_AUTHENTICATED = "not_authenticated"
DEFAULT_RENEWAL_MARGIN_MS = 30_000


@dataclass(frozen=True)
class AccessResult:
    """Outcome of ensure_access().

    Attributes:
        access_token: Usable bearer token, or None if unauthenticated
        error: "not_authenticated" when there's no way to get a token
        record: Replacement credential record when a refresh happened (re-seal it!)
        clear_session: Caller should expire the session cookie
    """

    access_token: str | None = None
    error: str | None = None
    record: CredentialRecord | None = None
    clear_session: bool = False

    @property
    def refreshed(self) -> bool:
        return self.record is not None

    @classmethod
    def unauthenticated(cls, clear_session: bool) -> "AccessResult":
        return cls(error=NOT_AUTHENTICATED, clear_session=clear_session)


class TokenRefresher:
    """Returns a valid access token for a credential record, refreshing when stale."""

    def __init__(
        self,
        auth_service: SpotifyAuthService,
        renewal_margin_ms: int = DEFAULT_RENEWAL_MARGIN_MS,
        clock: Callable[[], int] = epoch_ms,
    ) -> None:
        """
        Args:
            auth_service: Performs the actual token refresh
            renewal_margin_ms: Treat tokens as stale this long before expiry
            clock: Epoch-milliseconds source (injectable for tests)
        """
        self._auth_service = auth_service
        self._margin_ms = renewal_margin_ms
        self._clock = clock
        self._inflight: dict[tuple[int, str], asyncio.Task[TokenResult]] = {}

    async def ensure_access(self, record: CredentialRecord | None) -> AccessResult:
        """Get a usable access token for ``record``.

        Raises:
            TokenRefreshException: If the refresh call failed (fail closed)
        """
        if record is None:
            return AccessResult.unauthenticated(clear_session=False)

        if not record.is_stale(self._clock(), self._margin_ms):
            return AccessResult(access_token=record.access_token)

        if not record.refresh_token:
            logger.info("Access token expired and no refresh token - session invalidated")
            return AccessResult.unauthenticated(clear_session=True)

        result = await self._refresh_once(record.refresh_token)

        new_record = record.refreshed(
            access_token=result.access_token,
            expires_in_seconds=result.expires_in,
            now_ms=self._clock(),
            refresh_token=result.refresh_token,
        )
        return AccessResult(access_token=new_record.access_token, record=new_record)

    async def _refresh_once(self, refresh_token: str) -> TokenResult:
        """Refresh, joining an in-flight refresh of the same token if there is one."""
        # Keyed per event loop too: a task can only be awaited from the loop that owns it.
        key = (id(asyncio.get_running_loop()), refresh_token)

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._auth_service.refresh(refresh_token))
            self._inflight[key] = task
            task.add_done_callback(lambda done: self._forget(key, done))
        else:
            logger.debug("Joining in-flight token refresh")

        # shield: one caller going away (client disconnect) must not cancel the
        # refresh the other callers are waiting on.
        return await asyncio.shield(task)

    def _forget(self, key: tuple[int, str], task: "asyncio.Task[TokenResult]") -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        # Mark the exception as retrieved even if every waiter was cancelled.
        if not task.cancelled():
            task.exception()

    @property
    def inflight_count(self) -> int:
        """Number of refreshes currently in flight (for debugging)."""
        return len(self._inflight)
