"""Cookie signing and sealing primitives."""

from tracklog.infrastructure.security.cookie_codec import (
    CookieCodec,
    from_base64url,
    timing_safe_equal,
    to_base64url,
)

__all__ = ["CookieCodec", "from_base64url", "timing_safe_equal", "to_base64url"]
