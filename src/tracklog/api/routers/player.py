"""Listening-history endpoints: /recent and /now-playing."""

import logging

from fastapi import APIRouter, Depends, Response

from tracklog.api.dependencies import get_spotify_client, require_access_token
from tracklog.api.schemas import NowPlayingResponse, RecentTracksResponse
from tracklog.infrastructure.integrations import SpotifyClient

logger = logging.getLogger(__name__)

router = APIRouter()

# Per-user data: browsers and shared proxies must never cache it.
NO_STORE = "private, no-store"
RECENT_LIMIT = 20


@router.get("/recent", response_model=RecentTracksResponse)
async def recent_tracks(
    response: Response,
    access_token: str = Depends(require_access_token),
    spotify_client: SpotifyClient = Depends(get_spotify_client),
) -> RecentTracksResponse:
    """Last 20 played tracks, newest first."""
    payload = await spotify_client.get_recently_played(access_token, limit=RECENT_LIMIT)
    response.headers["Cache-Control"] = NO_STORE
    return RecentTracksResponse.from_spotify(payload)


@router.get("/now-playing", response_model=NowPlayingResponse)
async def now_playing(
    response: Response,
    access_token: str = Depends(require_access_token),
    spotify_client: SpotifyClient = Depends(get_spotify_client),
) -> NowPlayingResponse:
    """What's playing right now (``is_playing: false`` when nothing is)."""
    payload = await spotify_client.get_currently_playing(access_token)
    response.headers["Cache-Control"] = NO_STORE
    return NowPlayingResponse.from_spotify(payload)
