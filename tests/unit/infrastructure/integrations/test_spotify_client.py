"""Tests for the Spotify HTTP client."""

import asyncio
import base64
from collections.abc import AsyncGenerator
from unittest.mock import MagicMock
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest
from pytest_httpx import HTTPXMock

from tracklog.config.settings import SpotifySettings
from tracklog.domain.exceptions import (
    ConfigurationError,
    ExternalServiceError,
    TokenRefreshException,
)
from tracklog.infrastructure.integrations.spotify_client import SpotifyClient

TOKEN_URL = "https://accounts.spotify.com/api/token"
RECENT_URL = "https://api.spotify.com/v1/me/player/recently-played?limit=20"
CURRENT_URL = "https://api.spotify.com/v1/me/player/currently-playing"


@pytest.fixture
async def spotify_client(spotify_settings: SpotifySettings) -> AsyncGenerator[SpotifyClient, None]:
    """Spotify client with its own httpx client (intercepted by pytest-httpx)."""
    async with httpx.AsyncClient() as http_client:
        yield SpotifyClient(spotify_settings, client=http_client)


def _form(request: httpx.Request) -> dict[str, list[str]]:
    return parse_qs(request.content.decode())


class TestAuthorizationUrl:
    """Test building the Spotify consent URL."""

    def test_contains_required_params(self, spotify_settings: SpotifySettings):
        client = SpotifyClient(spotify_settings)
        url = client.build_authorization_url("state-123")

        parts = urlsplit(url)
        params = parse_qs(parts.query)
        assert f"{parts.scheme}://{parts.netloc}{parts.path}" == "https://accounts.spotify.com/authorize"
        assert params["response_type"] == ["code"]
        assert params["client_id"] == ["test-client-id"]
        assert params["scope"] == ["user-read-recently-played user-read-currently-playing"]
        assert params["redirect_uri"] == ["http://localhost:3000/callback"]
        assert params["state"] == ["state-123"]
        assert "show_dialog" not in params

    def test_show_dialog(self, spotify_settings: SpotifySettings):
        url = SpotifyClient(spotify_settings).build_authorization_url("s", show_dialog=True)
        assert parse_qs(urlsplit(url).query)["show_dialog"] == ["true"]

    def test_missing_client_id(self, spotify_settings: SpotifySettings):
        settings = spotify_settings.model_copy(update={"client_id": "  "})
        with pytest.raises(ConfigurationError):
            SpotifyClient(settings).build_authorization_url("s")

    def test_missing_redirect_uri(self, spotify_settings: SpotifySettings):
        settings = spotify_settings.model_copy(update={"redirect_uri": ""})
        with pytest.raises(ConfigurationError):
            SpotifyClient(settings).build_authorization_url("s")


class TestTokenEndpoint:
    """Test code exchange and refresh against the accounts service."""

    async def test_exchange_code_success(self, spotify_client: SpotifyClient, httpx_mock: HTTPXMock):
        """Test code exchange posts the form with Basic auth and returns the JSON."""
        httpx_mock.add_response(
            method="POST",
            url=TOKEN_URL,
            json={"access_token": "a", "refresh_token": "r", "expires_in": 3600},
        )

        result = await spotify_client.exchange_code("code-abc")

        assert result["access_token"] == "a"
        request = httpx_mock.get_request()
        assert request is not None
        expected = base64.b64encode(b"test-client-id:test-client-secret").decode()
        assert request.headers["Authorization"] == f"Basic {expected}"
        assert request.headers["Content-Type"] == "application/x-www-form-urlencoded"
        assert _form(request) == {
            "grant_type": ["authorization_code"],
            "code": ["code-abc"],
            "redirect_uri": ["http://localhost:3000/callback"],
        }

    async def test_exchange_code_rejected(self, spotify_client: SpotifyClient, httpx_mock: HTTPXMock):
        httpx_mock.add_response(
            method="POST", url=TOKEN_URL, status_code=400, json={"error": "invalid_grant"}
        )

        with pytest.raises(ExternalServiceError) as exc_info:
            await spotify_client.exchange_code("bad")

        assert exc_info.value.http_status == 400
        assert "invalid_grant" in exc_info.value.message

    async def test_exchange_code_non_json_body(self, spotify_client: SpotifyClient, httpx_mock: HTTPXMock):
        httpx_mock.add_response(method="POST", url=TOKEN_URL, text="<html>oops</html>")

        with pytest.raises(ExternalServiceError):
            await spotify_client.exchange_code("code")

    async def test_refresh_success(self, spotify_client: SpotifyClient, httpx_mock: HTTPXMock):
        httpx_mock.add_response(
            method="POST", url=TOKEN_URL, json={"access_token": "new", "expires_in": 3600}
        )

        result = await spotify_client.refresh_token("refresh-1")

        assert result == {"access_token": "new", "expires_in": 3600}
        request = httpx_mock.get_request()
        assert request is not None
        assert _form(request) == {
            "grant_type": ["refresh_token"],
            "refresh_token": ["refresh-1"],
        }

    async def test_refresh_rejected(self, spotify_client: SpotifyClient, httpx_mock: HTTPXMock):
        httpx_mock.add_response(method="POST", url=TOKEN_URL, status_code=400, text="revoked")

        with pytest.raises(TokenRefreshException) as exc_info:
            await spotify_client.refresh_token("refresh-1")

        assert exc_info.value.http_status == 400

    async def test_refresh_transport_error(self, spotify_client: SpotifyClient, httpx_mock: HTTPXMock):
        """Test that transport failures during refresh become TokenRefreshException."""
        httpx_mock.add_exception(httpx.ConnectError("connection refused"))

        with pytest.raises(TokenRefreshException):
            await spotify_client.refresh_token("refresh-1")


class TestWebApi:
    """Test the listening-history endpoints."""

    async def test_recently_played(self, spotify_client: SpotifyClient, httpx_mock: HTTPXMock):
        httpx_mock.add_response(method="GET", url=RECENT_URL, json={"items": []})

        result = await spotify_client.get_recently_played("token-1")

        assert result == {"items": []}
        request = httpx_mock.get_request()
        assert request is not None
        assert request.headers["Authorization"] == "Bearer token-1"

    async def test_recently_played_limit_clamped(self, spotify_client: SpotifyClient, httpx_mock: HTTPXMock):
        httpx_mock.add_response(
            url="https://api.spotify.com/v1/me/player/recently-played?limit=50",
            json={"items": []},
        )

        await spotify_client.get_recently_played("token-1", limit=500)

    async def test_recently_played_upstream_error(self, spotify_client: SpotifyClient, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=RECENT_URL, status_code=502, text="bad gateway")

        with pytest.raises(ExternalServiceError) as exc_info:
            await spotify_client.get_recently_played("token-1")

        assert exc_info.value.http_status == 502

    async def test_currently_playing(self, spotify_client: SpotifyClient, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=CURRENT_URL, json={"is_playing": True, "item": {"name": "x"}})

        result = await spotify_client.get_currently_playing("token-1")

        assert result == {"is_playing": True, "item": {"name": "x"}}

    async def test_currently_playing_no_content(self, spotify_client: SpotifyClient, httpx_mock: HTTPXMock):
        """Test that 204 means nothing is playing, not an error."""
        httpx_mock.add_response(url=CURRENT_URL, status_code=204)

        assert await spotify_client.get_currently_playing("token-1") is None

    async def test_recently_played_204_is_an_error(self, spotify_client: SpotifyClient, httpx_mock: HTTPXMock):
        """Test that 204 is only tolerated where it was asked for."""
        httpx_mock.add_response(url=RECENT_URL, status_code=204)

        with pytest.raises(ExternalServiceError):
            await spotify_client.get_recently_played("token-1")

    async def test_unauthorized_token(self, spotify_client: SpotifyClient, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=CURRENT_URL, status_code=401, json={"error": {"status": 401}})

        with pytest.raises(ExternalServiceError) as exc_info:
            await spotify_client.get_currently_playing("token-1")

        assert exc_info.value.http_status == 401


class TestTimeouts:
    """Test that every upstream call is bounded."""

    async def test_httpx_timeout_becomes_external_error(
        self, spotify_client: SpotifyClient, httpx_mock: HTTPXMock
    ):
        httpx_mock.add_exception(httpx.ReadTimeout("timed out"))

        with pytest.raises(ExternalServiceError) as exc_info:
            await spotify_client.get_recently_played("token-1")

        assert "timed out" in exc_info.value.message

    async def test_overall_deadline_cancels_slow_call(self, spotify_settings: SpotifySettings):
        """Test that a call slower than timeout_seconds is cancelled, not awaited forever."""
        cancelled = asyncio.Event()

        async def slow_request(*args, **kwargs):
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        http_client = MagicMock(spec=httpx.AsyncClient)
        http_client.request = slow_request
        settings = spotify_settings.model_copy(update={"timeout_seconds": 0.05})
        client = SpotifyClient(settings, client=http_client)

        with pytest.raises(ExternalServiceError):
            await client.get_currently_playing("token-1")

        assert cancelled.is_set()
