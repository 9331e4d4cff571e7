"""Logging setup for the gateway: JSON lines in production, compact text locally.

Every record carries the request's correlation id (set by RequestLoggingMiddleware).
Never log cookie values, tokens or the /callback query string - the formatters don't
scrub anything, so callers must not pass secrets in the first place.
"""

import contextvars
import logging
import sys
import traceback
import uuid
from pathlib import Path
from typing import Any

from pythonjsonlogger import jsonlogger

# contextvars gives every asyncio task its own value; "" outside a request (startup, shutdown).
correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)

# Loggers that are chatty at INFO. httpx logs each upstream URL, which for the token
# endpoint is noise and for the data endpoints duplicates our own lines.
QUIET_LOGGERS = ("httpx", "httpcore", "hpack", "asyncio", "uvicorn.access")

TEXT_FORMAT = "%(asctime)s │ %(levelname)-7s │ %(name)s:%(lineno)d │ %(message)s"
JSON_FORMAT = "%(timestamp)s %(level)s %(name)s %(message)s"


def get_correlation_id() -> str:
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Bind a correlation id to the current context, generating a UUID4 if none is given.

    Returns:
        The id now in effect
    """
    value = correlation_id or str(uuid.uuid4())
    correlation_id_var.set(value)
    return value


class CorrelationIdFilter(logging.Filter):
    """Copies the context's correlation id onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get()
        return True


def _exception_chain(exc: BaseException) -> list[BaseException]:
    """Root cause first. Guards against cycles in __cause__/__context__."""
    chain: list[BaseException] = []
    current: BaseException | None = exc
    while current is not None and current not in chain:
        chain.append(current)
        current = current.__cause__ or current.__context__
    return list(reversed(chain))


def _own_frames(exc: BaseException) -> list[str]:
    lines = []
    for frame in traceback.extract_tb(exc.__traceback__):
        if "tracklog" not in frame.filename or "/site-packages/" in frame.filename:
            continue
        lines.append(f'    File "{Path(frame.filename).name}", line {frame.lineno}, in {frame.name}')
        if frame.line:
            lines.append(f"      {frame.line.strip()}")
    return lines


class CompactExceptionFormatter(logging.Formatter):
    """Text formatter that prints an exception chain as one line per exception.

    Library frames are dropped; only frames from tracklog itself are shown:

        ERROR   │ tracklog.api.exception_handlers:131 │ External service error at /recent
        ╰─► ReadTimeout: timed out
        ╰─► ExternalServiceError: spotify request timed out
            File "spotify_client.py", line 69, in _send
    """

    def formatException(self, ei: Any) -> str:
        exc_value = ei[1]
        if exc_value is None:
            return ""

        lines: list[str] = []
        for exc in _exception_chain(exc_value):
            lines.append(f"╰─► {type(exc).__name__}: {exc}")
            lines.extend(_own_frames(exc))
        return "\n".join(lines)


class CustomJsonFormatter(jsonlogger.JsonFormatter):  # type: ignore[name-defined,misc]
    """One JSON object per line with level, logger, source line and correlation id."""

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record.update(
            timestamp=self.formatTime(record, self.datefmt),
            level=record.levelname,
            logger=record.name,
            function=record.funcName,
            line=record.lineno,
        )
        correlation_id = getattr(record, "correlation_id", "")
        if correlation_id:
            log_record["correlation_id"] = correlation_id


# Hey future me - the lifespan calls this at startup. It REPLACES the root handlers, so calling
# it twice (tests, uvicorn reload) never doubles the output.
def configure_logging(
    log_level: str = "INFO",
    json_format: bool = False,
    app_name: str = "tracklog",
) -> None:
    """Install a single stdout handler on the root logger.

    Args:
        log_level: Level name; unknown names fall back to INFO
        json_format: JSON lines (production) instead of compact text
        app_name: Included in the "Logging configured" line
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(CorrelationIdFilter())
    if json_format:
        handler.setFormatter(CustomJsonFormatter(JSON_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    else:
        handler.setFormatter(CompactExceptionFormatter(fmt=TEXT_FORMAT, datefmt="%H:%M:%S"))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "Logging configured",
        extra={"app_name": app_name, "log_level": log_level, "json_format": json_format},
    )
