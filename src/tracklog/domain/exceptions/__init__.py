"""Domain exceptions.

Each exception carries the public ``error_code`` the gateway puts in its JSON body.
The HTTP mapping lives in ``tracklog.api.exception_handlers``.
"""

from typing import Any


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    error_code: str = "internal_error"

    # Hey future me, we store message as an attribute so handlers can log it without parsing
    # str(exception). DON'T raise this base class directly - pick a subclass so callers (and the
    # exception handlers) can catch precisely.
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class AuthenticationError(DomainException):
    """No usable session: absent, corrupt, expired without refresh token.

    HTTP Status: 401

    ``clear_session`` tells the gateway to expire the session cookies on the way out,
    so the browser stops replaying a cookie we can never accept.
    """

    error_code = "not_authenticated"

    def __init__(
        self,
        message: str = "Not authenticated. Please log in with Spotify.",
        clear_session: bool = False,
    ) -> None:
        super().__init__(message)
        self.clear_session = clear_session


class RateLimitExceededError(DomainException):
    """Client exceeded its request budget for the current window.

    HTTP Status: 429 (with Retry-After)
    """

    error_code = "too_many_requests"

    def __init__(self, retry_after_seconds: int, identity: str | None = None) -> None:
        super().__init__(f"Rate limit exceeded - retry after {retry_after_seconds}s")
        self.retry_after_seconds = retry_after_seconds
        self.identity = identity


class InvalidCallbackError(DomainException):
    """OAuth callback failed state/code validation. Terminal, user must restart login.

    HTTP Status: 400
    """

    error_code = "invalid_callback"


class ExternalServiceError(DomainException):
    """Spotify returned a non-success response, timed out, or sent garbage.

    HTTP Status: 500 with a generic body. ``message`` holds the upstream detail and
    is only ever logged.
    """

    error_code = "upstream_error"

    def __init__(self, message: str, http_status: int | None = None) -> None:
        super().__init__(message)
        self.http_status = http_status


class TokenRefreshException(ExternalServiceError):
    """Refreshing the access token failed. The session is invalidated (fail closed).

    Hey future me - we do NOT retry with the same refresh token. If Spotify said no, the
    token may be revoked; hammering the endpoint won't change that.
    """

    def __init__(
        self,
        message: str = "Token refresh failed. Please re-authenticate with Spotify.",
        http_status: int | None = None,
    ) -> None:
        super().__init__(message, http_status=http_status)


class ConfigurationError(DomainException):
    """Application misconfiguration (missing client id, redirect URI, ...)."""

    error_code = "configuration_error"


__all__ = [
    "DomainException",
    "AuthenticationError",
    "RateLimitExceededError",
    "InvalidCallbackError",
    "ExternalServiceError",
    "TokenRefreshException",
    "ConfigurationError",
]
