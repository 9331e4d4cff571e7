"""Tests for sealing credential records into session cookies."""

import pytest

from tracklog.application.services.session_codec import SessionCodec
from tracklog.domain.entities import CredentialRecord
from tracklog.infrastructure.security import CookieCodec


@pytest.fixture
def session_codec(cookie_codec: CookieCodec) -> SessionCodec:
    return SessionCodec(cookie_codec)


class TestSessionCodec:
    """Test encode/decode of the session cookie."""

    def test_decode_returns_equal_record(self, session_codec: SessionCodec, fresh_record):
        assert session_codec.decode(session_codec.encode(fresh_record)) == fresh_record

    def test_record_without_refresh_token(self, session_codec: SessionCodec):
        record = CredentialRecord("a", None, 42)
        assert session_codec.decode(session_codec.encode(record)) == record

    @pytest.mark.parametrize("token", [None, "", "garbage", "a.b.c"])
    def test_undecodable_cookie_is_no_session(self, session_codec: SessionCodec, token):
        assert session_codec.decode(token) is None

    def test_cookie_from_other_deployment_is_no_session(self, session_codec: SessionCodec, fresh_record):
        foreign = SessionCodec(CookieCodec("other-secret")).encode(fresh_record)
        assert session_codec.decode(foreign) is None

    def test_sealed_payload_without_access_token_is_no_session(
        self, session_codec: SessionCodec, cookie_codec: CookieCodec
    ):
        """Test that an authentic cookie with the wrong shape still reads as no session."""
        token = cookie_codec.seal({"refresh_token": "r", "expires_at": 1})
        assert session_codec.decode(token) is None
