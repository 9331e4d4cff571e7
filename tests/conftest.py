"""Shared fixtures."""

import pytest

from tracklog.config.settings import (
    RateLimitSettings,
    SessionSettings,
    Settings,
    SpotifySettings,
)
from tracklog.domain.entities import CredentialRecord
from tracklog.infrastructure.security import CookieCodec

TEST_SECRET = "test-session-secret-do-not-use"
NOW_MS = 1_700_000_000_000


class FakeClock:
    """Epoch-milliseconds clock that only moves when told to."""

    def __init__(self, now_ms: int = NOW_MS) -> None:
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms


@pytest.fixture
def spotify_settings() -> SpotifySettings:
    """Spotify settings pointing at the real endpoint URLs (httpx is mocked)."""
    return SpotifySettings(
        client_id="test-client-id",
        client_secret="test-client-secret",
        redirect_uri="http://localhost:3000/callback",
        timeout_seconds=2.0,
    )


@pytest.fixture
def session_settings() -> SessionSettings:
    return SessionSettings(secret=TEST_SECRET)


@pytest.fixture
def settings(spotify_settings: SpotifySettings, session_settings: SessionSettings) -> Settings:
    """Complete settings object, independent of the environment."""
    return Settings(
        spotify=spotify_settings,
        session=session_settings,
        rate_limit=RateLimitSettings(window_seconds=60, capacity=80),
    )


@pytest.fixture
def cookie_codec() -> CookieCodec:
    return CookieCodec(TEST_SECRET)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fresh_record() -> CredentialRecord:
    """Record whose access token is valid for another hour."""
    return CredentialRecord(
        access_token="access-fresh",
        refresh_token="refresh-1",
        expires_at=NOW_MS + 3_600_000,
    )


@pytest.fixture
def stale_record() -> CredentialRecord:
    """Record that expires in 10s, inside the 30s renewal margin."""
    return CredentialRecord(
        access_token="access-stale",
        refresh_token="refresh-1",
        expires_at=NOW_MS + 10_000,
    )
