"""Application services: OAuth state, session sealing, token lifecycle."""

from tracklog.application.services.oauth_state_guard import IssuedState, OAuthStateGuard
from tracklog.application.services.session_codec import SessionCodec
from tracklog.application.services.spotify_auth_service import SpotifyAuthService, TokenResult
from tracklog.application.services.token_refresher import (
    NOT_AUTHENTICATED,
    AccessResult,
    TokenRefresher,
)

__all__ = [
    "AccessResult",
    "IssuedState",
    "NOT_AUTHENTICATED",
    "OAuthStateGuard",
    "SessionCodec",
    "SpotifyAuthService",
    "TokenRefresher",
    "TokenResult",
]
