"""Per-request access log and correlation id propagation."""

import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from tracklog.infrastructure.observability.logging import (
    get_correlation_id,
    set_correlation_id,
)
from tracklog.infrastructure.rate_limiter import client_identity

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def _request_fields(request: Request) -> dict[str, Any]:
    # Path only. The query string of /callback holds the OAuth code and state.
    return {
        "method": request.method,
        "path": request.url.path,
        "client": client_identity(request),
    }


# Hey future me, this logs ONE line per request, after the response is built. The client
# identity is the same one the rate limiter uses, so a 429 in the log can be matched to
# the bucket that tripped it.
class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs method, path, status and duration; echoes the correlation id header."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        set_correlation_id(request.headers.get(CORRELATION_HEADER))
        fields = _request_fields(request)
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception(
                "Request failed: %s %s",
                fields["method"],
                fields["path"],
                extra={**fields, "duration_ms": _elapsed_ms(started), "error_type": type(e).__name__},
            )
            raise

        duration_ms = _elapsed_ms(started)
        marker = "✓" if response.status_code < 400 else "✗"
        logger.info(
            f"{marker} {fields['method']} {fields['path']} → {response.status_code} ({duration_ms}ms)",
            extra={**fields, "status_code": response.status_code, "duration_ms": duration_ms},
        )

        response.headers[CORRELATION_HEADER] = get_correlation_id()
        return response
