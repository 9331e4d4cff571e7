"""API response schemas."""

from tracklog.api.schemas.player import (
    NowPlayingResponse,
    RecentTrack,
    RecentTracksResponse,
    TrackSummary,
)

__all__ = [
    "NowPlayingResponse",
    "RecentTrack",
    "RecentTracksResponse",
    "TrackSummary",
]
