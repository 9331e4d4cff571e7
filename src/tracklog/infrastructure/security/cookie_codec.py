"""Authenticated encryption and HMAC signing for client-held cookies.

Hey future me - this is the ONLY place that touches key material! Two primitives:

1. Signing (HMAC-SHA256): ``value.signature`` - used for the OAuth state cookie.
   Readable by the client, but not forgeable.
2. Sealing (AES-256-GCM): ``nonce.tag.ciphertext`` - used for the session cookie.
   Neither readable nor forgeable.

Both derive from the single SESSION_SECRET. Rotating the secret invalidates every
session and in-flight login at once (that's the logout-everyone button).

RULES:
- unseal() and read_signed() NEVER raise on bad input. A corrupt cookie is "no session",
  not a 500, and never a distinguishable error (no decryption oracle).
- Base64 decoding is canonical: non-alphabet characters and non-zero padding bits are
  rejected instead of silently ignored, so any flipped bit in the token fails.
- A fresh 96-bit nonce per seal(). GCM with a reused nonce leaks the keystream.
"""

import base64
import binascii
import hashlib
import hmac
import json
import logging
import re
import secrets
from typing import Any

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

logger = logging.getLogger(__name__)

NONCE_BYTES = 12
TAG_BYTES = 16
SIGNED_VALUE_SEPARATOR = "."
SEALED_SEGMENTS = 3

_BASE64URL_ALPHABET = re.compile(r"[A-Za-z0-9_-]*")


def to_base64url(raw: bytes) -> str:
    """Encode bytes as unpadded URL-safe base64."""
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def from_base64url(value: str) -> bytes:
    """Decode unpadded URL-safe base64, accepting only the canonical encoding.

    Raises:
        ValueError: If the input is not exactly what to_base64url() would produce
    """
    if not _BASE64URL_ALPHABET.fullmatch(value):
        raise ValueError("Invalid base64url alphabet")
    padding = "=" * (-len(value) % 4)
    try:
        raw = base64.urlsafe_b64decode(value + padding)
    except binascii.Error as exc:
        raise ValueError(f"Invalid base64url encoding: {exc}") from exc
    if to_base64url(raw) != value:
        raise ValueError("Non-canonical base64url encoding")
    return raw


def timing_safe_equal(a: str, b: str) -> bool:
    """Compare two strings in constant time.

    The length check comes first; compare_digest only runs on equal-length input.
    """
    left = a.encode("utf-8")
    right = b.encode("utf-8")
    if len(left) != len(right):
        return False
    return hmac.compare_digest(left, right)


class CookieCodec:
    """Signs and seals cookie values with keys derived from one deployment secret."""

    def __init__(self, secret: str) -> None:
        """Initialize codec.

        Args:
            secret: Deployment secret (SESSION_SECRET). Used as-is for HMAC and
                hashed with SHA-256 into the 256-bit AES-GCM key.
        """
        if not secret:
            raise ValueError("Cookie secret must not be empty")
        self._signing_key = secret.encode("utf-8")
        self._aead = AESGCM(hashlib.sha256(self._signing_key).digest())

    # -------------------------------------------------------------------------
    # Signing
    # -------------------------------------------------------------------------

    def sign(self, value: str) -> str:
        """Return the HMAC-SHA256 signature of ``value`` as unpadded base64url."""
        digest = hmac.new(self._signing_key, value.encode("utf-8"), hashlib.sha256).digest()
        return to_base64url(digest)

    def make_signed(self, value: str) -> str:
        """Return ``value.signature``."""
        return f"{value}{SIGNED_VALUE_SEPARATOR}{self.sign(value)}"

    def read_signed(self, raw: str | None) -> str | None:
        """Verify a signed value and return the original value.

        The value itself may contain dots, so we split on the LAST separator.

        Returns:
            The unsigned value, or None if missing, malformed or tampered with
        """
        if not raw:
            return None

        separator_index = raw.rfind(SIGNED_VALUE_SEPARATOR)
        if separator_index <= 0:
            return None

        value = raw[:separator_index]
        signature = raw[separator_index + 1 :]
        if not timing_safe_equal(signature, self.sign(value)):
            return None
        return value

    # -------------------------------------------------------------------------
    # Sealing
    # -------------------------------------------------------------------------

    def seal(self, payload: dict[str, Any]) -> str:
        """Encrypt and authenticate a JSON-serializable payload.

        Returns:
            ``b64url(nonce).b64url(tag).b64url(ciphertext)``
        """
        nonce = secrets.token_bytes(NONCE_BYTES)
        plaintext = json.dumps(payload, separators=(",", ":")).encode("utf-8")
        # cryptography appends the tag to the ciphertext - split it off for our wire format.
        encrypted = self._aead.encrypt(nonce, plaintext, None)
        ciphertext, tag = encrypted[:-TAG_BYTES], encrypted[-TAG_BYTES:]
        return SIGNED_VALUE_SEPARATOR.join(to_base64url(part) for part in (nonce, tag, ciphertext))

    def unseal(self, token: str | None) -> dict[str, Any] | None:
        """Decrypt a sealed token.

        Returns:
            The payload dict, or None on any structural, cryptographic or parse failure
        """
        if not token:
            return None

        parts = token.split(SIGNED_VALUE_SEPARATOR)
        if len(parts) != SEALED_SEGMENTS:
            return None

        try:
            nonce, tag, ciphertext = (from_base64url(part) for part in parts)
        except ValueError:
            return None

        if len(nonce) != NONCE_BYTES or len(tag) != TAG_BYTES:
            return None

        try:
            plaintext = self._aead.decrypt(nonce, ciphertext + tag, None)
        except InvalidTag:
            # Wrong key, truncation or tampering - all look the same from here.
            logger.debug("Rejected sealed token: authentication tag mismatch")
            return None

        try:
            payload = json.loads(plaintext.decode("utf-8"))
        except (UnicodeDecodeError, ValueError):
            return None

        if not isinstance(payload, dict):
            return None
        return payload


__all__ = [
    "CookieCodec",
    "from_base64url",
    "timing_safe_equal",
    "to_base64url",
]
