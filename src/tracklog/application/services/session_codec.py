"""Session cookie <-> CredentialRecord."""

import logging

from tracklog.domain.entities import CredentialRecord
from tracklog.infrastructure.security import CookieCodec

logger = logging.getLogger(__name__)


class SessionCodec:
    """Seals credential records into cookie values and back.

    decode() never raises: a cookie that fails to unseal, or unseals into something that
    isn't a credential record, is simply "no session".
    """

    def __init__(self, codec: CookieCodec) -> None:
        self._codec = codec

    def encode(self, record: CredentialRecord) -> str:
        """Seal a record into a cookie value."""
        return self._codec.seal(record.to_payload())

    def decode(self, token: str | None) -> CredentialRecord | None:
        """Unseal a cookie value into a record, or None."""
        if not token:
            return None

        payload = self._codec.unseal(token)
        if payload is None:
            logger.debug("Session cookie rejected (could not unseal)")
            return None

        record = CredentialRecord.from_payload(payload)
        if record is None:
            logger.debug("Session cookie rejected (no access token in payload)")
        return record
