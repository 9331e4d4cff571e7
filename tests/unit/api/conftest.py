"""Fixtures for API tests: a fully wired app with Spotify calls stubbed out."""

from collections.abc import Callable
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from httpx import Response

from tracklog.config import Settings
from tracklog.domain.clock import epoch_ms
from tracklog.domain.entities import CredentialRecord
from tracklog.infrastructure.integrations import SpotifyClient
from tracklog.main import create_app


@pytest.fixture
def app(settings: Settings) -> FastAPI:
    return create_app(settings)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Test client that does not follow redirects (we assert on them)."""
    return TestClient(app, follow_redirects=False)


@pytest.fixture
def spotify(app: FastAPI, mocker) -> SpotifyClient:
    """The app's real SpotifyClient with every network method replaced by an AsyncMock.

    Auth service and token refresher keep their real wiring on top of it.
    """
    spotify_client: SpotifyClient = app.state.spotify_client
    mocker.patch.object(
        spotify_client,
        "exchange_code",
        new=AsyncMock(
            return_value={"access_token": "access-1", "refresh_token": "refresh-1", "expires_in": 3600}
        ),
    )
    mocker.patch.object(
        spotify_client,
        "refresh_token",
        new=AsyncMock(return_value={"access_token": "access-new", "expires_in": 3600}),
    )
    mocker.patch.object(
        spotify_client, "get_recently_played", new=AsyncMock(return_value={"items": []})
    )
    mocker.patch.object(spotify_client, "get_currently_playing", new=AsyncMock(return_value=None))
    return spotify_client


@pytest.fixture
def make_session(app: FastAPI) -> Callable[..., str]:
    """Build a sealed session cookie value the app will accept."""

    def _make(
        access_token: str = "access-fresh",
        refresh_token: str | None = "refresh-1",
        expires_in_ms: int = 3_600_000,
    ) -> str:
        record = CredentialRecord(access_token, refresh_token, epoch_ms() + expires_in_ms)
        return app.state.session_codec.encode(record)

    return _make


@pytest.fixture
def set_cookies() -> Callable[[Response], dict[str, str]]:
    """Map cookie name -> full Set-Cookie header of a response."""

    def _parse(response: Response) -> dict[str, str]:
        return {
            header.split("=", 1)[0]: header for header in response.headers.get_list("set-cookie")
        }

    return _parse
