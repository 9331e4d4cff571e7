"""Custom exception handlers for FastAPI application.

This module registers global exception handlers that convert domain exceptions
into the gateway's small JSON error vocabulary: ``{"error": "<code>"}``.

Hey future me - upstream detail NEVER goes into a response body. Spotify error bodies
are logged (truncated) and the client sees a generic "upstream_error". Also, handlers
are the last place that can touch cookies on the error path, so clearing a dead
session (and keeping a freshly refreshed one) happens here too.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse

from tracklog.api.cookies import SessionCookies
from tracklog.domain.exceptions import (
    AuthenticationError,
    ConfigurationError,
    ExternalServiceError,
    InvalidCallbackError,
    RateLimitExceededError,
    TokenRefreshException,
)

logger = logging.getLogger(__name__)

INVALID_CALLBACK_BODY = "invalid auth callback"


def _error_body(code: str) -> dict[str, str]:
    return {"error": code}


def _cookies(request: Request) -> SessionCookies:
    return request.app.state.cookies  # type: ignore[no-any-return]


def register_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the FastAPI application.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(AuthenticationError)
    async def authentication_error_handler(
        request: Request, exc: AuthenticationError
    ) -> JSONResponse:
        """Handle missing/unusable sessions with 401 Unauthorized."""
        logger.info(
            "Not authenticated at %s (clear_session=%s)",
            request.url.path,
            exc.clear_session,
            extra={"path": request.url.path},
        )
        response = JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content=_error_body(exc.error_code),
        )
        if exc.clear_session:
            _cookies(request).clear_all(response)
        return response

    @app.exception_handler(RateLimitExceededError)
    async def rate_limit_exceeded_handler(
        request: Request, exc: RateLimitExceededError
    ) -> JSONResponse:
        """Handle rate limit errors with 429 Too Many Requests + Retry-After."""
        # FixedWindowRateLimiter already logged the rejection with the identity
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content=_error_body(exc.error_code),
            headers={"Retry-After": str(exc.retry_after_seconds)},
        )

    @app.exception_handler(InvalidCallbackError)
    async def invalid_callback_handler(
        request: Request, exc: InvalidCallbackError
    ) -> PlainTextResponse:
        """Handle a failed OAuth callback check with 400 Bad Request (plain text)."""
        logger.warning(
            "Rejected OAuth callback: %s",
            exc.message,
            extra={"path": request.url.path, "error": exc.message},
        )
        response = PlainTextResponse(
            INVALID_CALLBACK_BODY, status_code=status.HTTP_400_BAD_REQUEST
        )
        # The state is single-use either way; the user has to start over at /login.
        _cookies(request).clear_state(response)
        return response

    # Registered separately from ExternalServiceError: Starlette picks the handler by the
    # exception's MRO, so a failed refresh lands here, not in the generic upstream handler.
    @app.exception_handler(TokenRefreshException)
    async def token_refresh_error_handler(
        request: Request, exc: TokenRefreshException
    ) -> JSONResponse:
        """Handle refresh failures with 500 and a cleared session (fail closed)."""
        logger.error(
            "Token refresh failed at %s: %s",
            request.url.path,
            exc.message,
            extra={
                "path": request.url.path,
                "error": exc.message,
                "upstream_status": exc.http_status,
            },
        )
        response = JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(exc.error_code),
        )
        _cookies(request).clear_all(response)
        return response

    @app.exception_handler(ExternalServiceError)
    async def external_service_error_handler(
        request: Request, exc: ExternalServiceError
    ) -> JSONResponse:
        """Handle Spotify failures with 500 and a generic body."""
        logger.error(
            "External service error at %s: %s",
            request.url.path,
            exc.message,
            extra={
                "path": request.url.path,
                "error": exc.message,
                "upstream_status": exc.http_status,
            },
        )
        response = JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(exc.error_code),
        )
        # The refresh earlier in this request succeeded - don't throw the new token away.
        refreshed = getattr(request.state, "refreshed_session", None)
        if refreshed:
            _cookies(request).set_session(response, refreshed)
        return response

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(
        request: Request, exc: ConfigurationError
    ) -> JSONResponse:
        """Handle configuration errors with 503 Service Unavailable."""
        logger.error(
            "Configuration error at %s: %s",
            request.url.path,
            exc.message,
            extra={"path": request.url.path, "error": exc.message},
        )
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=_error_body(exc.error_code),
        )
