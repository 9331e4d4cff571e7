"""Domain entities."""

import math
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any


@dataclass(frozen=True)
class CredentialRecord:
    """OAuth credentials carried (sealed) in the session cookie.

    Hey future me - the server never keeps a copy of this! It exists only inside the
    encrypted cookie. Frozen on purpose: a refresh produces a NEW record via refreshed(),
    we never patch fields of the one we decoded.

    Attributes:
        access_token: Bearer token for Spotify Web API calls
        refresh_token: Long-lived token for renewal (Spotify may omit it)
        expires_at: Access token expiry as epoch milliseconds
    """

    access_token: str
    refresh_token: str | None
    expires_at: int

    def is_stale(self, now_ms: int, margin_ms: int) -> bool:
        """True when the access token expires within ``margin_ms`` of ``now_ms``."""
        return now_ms >= self.expires_at - margin_ms

    def refreshed(
        self,
        access_token: str,
        expires_in_seconds: int,
        now_ms: int,
        refresh_token: str | None = None,
    ) -> "CredentialRecord":
        """Build the replacement record after a successful token refresh.

        The previous refresh token is kept when Spotify does not rotate it.
        """
        return replace(
            self,
            access_token=access_token,
            refresh_token=refresh_token or self.refresh_token,
            expires_at=now_ms + expires_in_seconds * 1000,
        )

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the JSON object sealed into the cookie."""
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_at": self.expires_at,
        }

    @classmethod
    def from_payload(cls, payload: Any) -> "CredentialRecord | None":
        """Rebuild a record from an unsealed payload.

        Returns None when the payload has no usable access token. A missing or
        non-numeric expires_at reads as 0, which makes the record immediately stale.
        """
        if not isinstance(payload, Mapping):
            return None

        access_token = payload.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            return None

        refresh_token = payload.get("refresh_token")
        if not isinstance(refresh_token, str) or not refresh_token:
            refresh_token = None

        expires_at = payload.get("expires_at")
        if isinstance(expires_at, bool) or not isinstance(expires_at, int | float):
            expires_at = 0
        elif not math.isfinite(expires_at):
            expires_at = 0

        return cls(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=int(expires_at),
        )


__all__ = ["CredentialRecord"]
