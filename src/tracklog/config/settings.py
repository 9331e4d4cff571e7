"""Application settings loaded from environment variables and .env."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Hey future me - every sub-settings class reads the SAME .env file with its own prefix.
# That way SPOTIFY_CLIENT_ID, SESSION_SECRET, PORT etc. all live in one place and tests can
# build any piece directly with keyword arguments (init kwargs beat env vars).
_BASE_CONFIG = SettingsConfigDict(env_file=".env", extra="ignore")


class SpotifySettings(BaseSettings):
    """Spotify OAuth client registration and upstream endpoints."""

    model_config = SettingsConfigDict(env_prefix="SPOTIFY_", **_BASE_CONFIG)

    client_id: str
    client_secret: str
    redirect_uri: str

    authorize_url: str = "https://accounts.spotify.com/authorize"
    token_url: str = "https://accounts.spotify.com/api/token"  # nosec B105 - public endpoint URL
    api_base_url: str = "https://api.spotify.com/v1"
    scopes: str = "user-read-recently-played user-read-currently-playing"

    # Upstream calls are cancelled after this many seconds (connect + read + body).
    timeout_seconds: float = Field(default=12.0, gt=0)


class SessionSettings(BaseSettings):
    """Sealed session cookie and OAuth state cookie configuration."""

    model_config = SettingsConfigDict(env_prefix="SESSION_", **_BASE_CONFIG)

    secret: str = Field(min_length=1)
    cookie_name: str = "session"
    state_cookie_name: str = "oauth_state"
    max_age_seconds: int = 60 * 60 * 24 * 30
    state_max_age_seconds: int = 60 * 10
    renewal_margin_ms: int = 30_000


class RateLimitSettings(BaseSettings):
    """Fixed-window admission control for the gateway routes."""

    model_config = SettingsConfigDict(env_prefix="RATE_LIMIT_", **_BASE_CONFIG)

    window_seconds: int = Field(default=60, gt=0)
    capacity: int = Field(default=80, gt=0)
    max_buckets: int = Field(default=10_000, gt=0)


class ApiSettings(BaseSettings):
    """HTTP server binding."""

    model_config = SettingsConfigDict(**_BASE_CONFIG)

    host: str = "0.0.0.0"  # nosec B104 - container default
    port: int = 3000


class ObservabilitySettings(BaseSettings):
    """Logging output format."""

    model_config = SettingsConfigDict(**_BASE_CONFIG)

    log_json_format: bool = False


class Settings(BaseSettings):
    """Root settings object.

    Required values (process refuses to start without them):
    SPOTIFY_CLIENT_ID, SPOTIFY_CLIENT_SECRET, SPOTIFY_REDIRECT_URI, SESSION_SECRET.
    """

    model_config = SettingsConfigDict(**_BASE_CONFIG)

    app_name: str = "tracklog"
    environment: str = "development"
    log_level: str = "INFO"

    spotify: SpotifySettings = Field(default_factory=SpotifySettings)  # type: ignore[arg-type]
    session: SessionSettings = Field(default_factory=SessionSettings)  # type: ignore[arg-type]
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    api: ApiSettings = Field(default_factory=ApiSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @property
    def secure_cookies(self) -> bool:
        """Cookies carry the Secure flag only in production (plain HTTP in dev)."""
        return self.environment.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    """Load settings once per process.

    Raises:
        pydantic.ValidationError: If a required variable is missing
    """
    return Settings()
