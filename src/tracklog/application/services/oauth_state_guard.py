"""CSRF protection for the OAuth redirect.

Hey future me - the flow is:
1. /login: issue() → raw state goes into the Spotify URL, signed state goes into the
   oauth_state cookie (10 minutes)
2. Spotify redirects back with ?state=<raw>
3. /callback: verify(cookie, query state) → both must match, or we stop with 400

An attacker can't plant a forged callback in the victim's browser: they don't know the
victim's cookie state, and they can't mint a cookie we'd accept without the secret.
"""

import secrets
from dataclasses import dataclass

from tracklog.infrastructure.security import CookieCodec, timing_safe_equal, to_base64url

STATE_BYTES = 18


@dataclass(frozen=True)
class IssuedState:
    """Result of issue(): raw state for the URL, signed value for the cookie."""

    state: str
    cookie_value: str


class OAuthStateGuard:
    """Issues and verifies signed OAuth state values."""

    def __init__(self, codec: CookieCodec) -> None:
        self._codec = codec

    def issue(self) -> IssuedState:
        """Generate a fresh random state and its signed cookie value."""
        state = to_base64url(secrets.token_bytes(STATE_BYTES))
        return IssuedState(state=state, cookie_value=self._codec.make_signed(state))

    def verify(self, cookie_value: str | None, received_state: str | None) -> bool:
        """Check the callback's state against the signed cookie.

        Returns:
            True only if both are non-empty, the cookie signature is valid and the
            unsigned value equals the received state (constant-time)
        """
        if not cookie_value or not received_state:
            return False

        expected = self._codec.read_signed(cookie_value)
        if not expected:
            return False
        return timing_safe_equal(expected, received_state)
