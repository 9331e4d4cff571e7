"""Tests for flattening Spotify payloads into response schemas."""

import re

from tracklog.api.schemas import NowPlayingResponse, RecentTrack, RecentTracksResponse, TrackSummary
from tracklog.api.schemas.player import utc_timestamp


class TestTrackSummary:
    """Test TrackSummary.from_spotify()."""

    def test_joins_artists(self):
        summary = TrackSummary.from_spotify(
            {"name": "Song", "artists": [{"name": "A"}, {"name": "B"}, {"name": None}, "junk"]}
        )
        assert summary.artists == "A, B"

    def test_missing_everything(self):
        summary = TrackSummary.from_spotify(None)

        assert summary.track_name == "unknown"
        assert summary.artists == ""
        assert summary.album == "unknown"
        assert summary.album_image is None
        assert summary.external_url is None
        assert summary.duration_ms == 0

    def test_prefers_medium_image(self):
        summary = TrackSummary.from_spotify(
            {"album": {"images": [{"url": "big"}, {"url": "medium"}, {"url": "small"}]}}
        )
        assert summary.album_image == "medium"

    def test_falls_back_to_only_image(self):
        summary = TrackSummary.from_spotify({"album": {"images": [{"url": "only"}]}})
        assert summary.album_image == "only"

    def test_non_integer_duration(self):
        assert TrackSummary.from_spotify({"duration_ms": "long"}).duration_ms == 0


class TestRecentTracksResponse:
    """Test RecentTracksResponse.from_spotify()."""

    def test_keeps_order_and_played_at(self):
        payload = {
            "items": [
                {"played_at": "2026-10-19T10:00:00.000Z", "track": {"name": "Second"}},
                {"played_at": "2026-10-19T09:00:00.000Z", "track": {"name": "First"}},
            ]
        }

        response = RecentTracksResponse.from_spotify(payload, fetched_at="2026-10-19T10:01:00.000Z")

        assert [item.track_name for item in response.items] == ["Second", "First"]
        assert response.items[0].played_at == "2026-10-19T10:00:00.000Z"
        assert response.fetched_at == "2026-10-19T10:01:00.000Z"

    def test_items_not_a_list(self):
        response = RecentTracksResponse.from_spotify({"items": None})
        assert response.items == []

    def test_entry_without_track(self):
        item = RecentTrack.from_play_history({"played_at": "2026-10-19T10:00:00.000Z"})

        assert item.track_name == "unknown"
        assert item.played_at == "2026-10-19T10:00:00.000Z"


class TestNowPlayingResponse:
    """Test NowPlayingResponse.from_spotify()."""

    def test_nothing_playing(self):
        assert NowPlayingResponse.from_spotify(None).model_dump() == {
            "is_playing": False,
            "progress_ms": 0,
            "item": None,
        }

    def test_payload_without_item(self):
        """Test that an ad or episode-less payload reads as idle."""
        response = NowPlayingResponse.from_spotify({"is_playing": True, "item": None})
        assert response.is_playing is False
        assert response.item is None

    def test_paused_track(self):
        response = NowPlayingResponse.from_spotify(
            {"is_playing": False, "progress_ms": 1234, "item": {"name": "Paused"}}
        )

        assert response.is_playing is False
        assert response.progress_ms == 1234
        assert response.item is not None
        assert response.item.track_name == "Paused"


def test_utc_timestamp_format():
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", utc_timestamp())
