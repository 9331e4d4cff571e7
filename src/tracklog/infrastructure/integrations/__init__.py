"""External service integrations."""

from tracklog.infrastructure.integrations.http_pool import HttpClientPool
from tracklog.infrastructure.integrations.spotify_client import SpotifyClient

__all__ = ["HttpClientPool", "SpotifyClient"]
