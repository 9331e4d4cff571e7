"""Tracklog - Spotify listening-history gateway with sealed cookie sessions."""

__version__ = "1.0.0"
