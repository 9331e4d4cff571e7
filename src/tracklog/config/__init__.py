"""Configuration module for tracklog."""

from .settings import (
    ApiSettings,
    ObservabilitySettings,
    RateLimitSettings,
    SessionSettings,
    Settings,
    SpotifySettings,
    get_settings,
)

__all__ = [
    "ApiSettings",
    "ObservabilitySettings",
    "RateLimitSettings",
    "SessionSettings",
    "Settings",
    "SpotifySettings",
    "get_settings",
]
