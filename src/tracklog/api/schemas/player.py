"""API schemas for the listening-history endpoints.

Hey future me - Spotify objects are deeply nested and any level can be null (local files,
podcasts, region-blocked albums). The from_spotify() builders flatten them and never
raise on missing fields: names fall back to "unknown", links and images to None.
"""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

UNKNOWN = "unknown"


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _pick_image(images: Any) -> str | None:
    # Spotify orders images largest first; the second one (~300px) fits a list row.
    candidates = _as_list(images)
    for index in (1, 0):
        if index < len(candidates):
            url = _as_dict(candidates[index]).get("url")
            if url:
                return str(url)
    return None


def utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a ``Z`` suffix."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class TrackSummary(BaseModel):
    """Flattened view of a Spotify track object."""

    track_name: str = Field(default=UNKNOWN, description="Track title")
    artists: str = Field(default="", description="Artist names, comma separated")
    album: str = Field(default=UNKNOWN, description="Album title")
    album_image: str | None = Field(default=None, description="Album cover URL")
    external_url: str | None = Field(default=None, description="Open-in-Spotify link")
    duration_ms: int = Field(default=0, description="Track length in milliseconds")

    @classmethod
    def _fields_from_track(cls, track: Any) -> dict[str, Any]:
        track = _as_dict(track)
        album = _as_dict(track.get("album"))
        artists = [
            str(artist["name"])
            for artist in _as_list(track.get("artists"))
            if isinstance(artist, dict) and artist.get("name")
        ]
        duration = track.get("duration_ms")
        return {
            "track_name": str(track.get("name") or UNKNOWN),
            "artists": ", ".join(artists),
            "album": str(album.get("name") or UNKNOWN),
            "album_image": _pick_image(album.get("images")),
            "external_url": _as_dict(track.get("external_urls")).get("spotify") or None,
            "duration_ms": duration if isinstance(duration, int) and not isinstance(duration, bool) else 0,
        }

    @classmethod
    def from_spotify(cls, track: Any) -> "TrackSummary":
        return cls(**cls._fields_from_track(track))


class RecentTrack(TrackSummary):
    """One entry of the recently-played history."""

    played_at: str | None = Field(default=None, description="ISO-8601 play timestamp")

    @classmethod
    def from_play_history(cls, item: Any) -> "RecentTrack":
        item = _as_dict(item)
        return cls(played_at=item.get("played_at"), **cls._fields_from_track(item.get("track")))


class RecentTracksResponse(BaseModel):
    """Response schema for GET /recent."""

    items: list[RecentTrack] = Field(default_factory=list)
    fetched_at: str = Field(..., description="When the gateway fetched the history (UTC)")

    @classmethod
    def from_spotify(cls, payload: dict[str, Any], fetched_at: str | None = None) -> "RecentTracksResponse":
        """Build from a ``/me/player/recently-played`` payload."""
        return cls(
            items=[RecentTrack.from_play_history(item) for item in _as_list(payload.get("items"))],
            fetched_at=fetched_at or utc_timestamp(),
        )


class NowPlayingResponse(BaseModel):
    """Response schema for GET /now-playing."""

    is_playing: bool = False
    progress_ms: int = 0
    item: TrackSummary | None = None

    @classmethod
    def from_spotify(cls, payload: dict[str, Any] | None) -> "NowPlayingResponse":
        """Build from a ``/me/player/currently-playing`` payload.

        ``None`` (Spotify answered 204) and payloads without an item (ads, private
        session) both mean "nothing playing".
        """
        if not payload or not isinstance(payload.get("item"), dict):
            return cls()

        progress = payload.get("progress_ms")
        return cls(
            is_playing=bool(payload.get("is_playing")),
            progress_ms=progress if isinstance(progress, int) and not isinstance(progress, bool) else 0,
            item=TrackSummary.from_spotify(payload["item"]),
        )
