"""Cookie writing for the session and OAuth state cookies.

Hey future me - ALL Set-Cookie headers go through here so the flags can't drift apart:
HttpOnly (JS never sees the sealed token), SameSite=Lax (the Spotify redirect back to
/callback is a top-level GET, so Lax still sends the state cookie), Secure in production.
"""

from starlette.responses import Response

from tracklog.config.settings import SessionSettings


class SessionCookies:
    """Sets and clears the ``session`` and ``oauth_state`` cookies."""

    def __init__(self, settings: SessionSettings, secure: bool) -> None:
        self.settings = settings
        self.secure = secure

    @property
    def session_name(self) -> str:
        return self.settings.cookie_name

    @property
    def state_name(self) -> str:
        return self.settings.state_cookie_name

    def _set(self, response: Response, key: str, value: str, max_age: int) -> None:
        response.set_cookie(
            key,
            value,
            max_age=max_age,
            path="/",
            secure=self.secure,
            httponly=True,
            samesite="lax",
        )

    def _clear(self, response: Response, key: str) -> None:
        response.delete_cookie(
            key,
            path="/",
            secure=self.secure,
            httponly=True,
            samesite="lax",
        )

    def set_session(self, response: Response, sealed_token: str) -> None:
        self._set(response, self.session_name, sealed_token, self.settings.max_age_seconds)

    def set_state(self, response: Response, signed_state: str) -> None:
        self._set(response, self.state_name, signed_state, self.settings.state_max_age_seconds)

    def clear_state(self, response: Response) -> None:
        self._clear(response, self.state_name)

    def clear_all(self, response: Response) -> None:
        """Expire both cookies (logout, unusable session)."""
        self._clear(response, self.session_name)
        self._clear(response, self.state_name)
