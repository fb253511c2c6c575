"""
LINE webhook signature verification.

The platform sends base64(HMAC-SHA256(channel_secret, raw_body)) in the
x-line-signature header. Verification must run on the raw bytes, before any
JSON parsing, since re-serialization does not reproduce the original bytes.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
from typing import Optional

from app.exceptions import SignatureInvalid
from app.infra.logging_config import get_logger

SIGNATURE_HEADER = "x-line-signature"

logger = get_logger("signature")


class SignatureVerifier:
    """Pure function of (body, header, secret); holds only the injected secret."""

    def __init__(self, channel_secret: str) -> None:
        self._channel_secret = channel_secret.encode("utf-8") if channel_secret else b""

    def compute(self, body: bytes) -> str:
        digest = hmac.new(self._channel_secret, body, hashlib.sha256).digest()
        return base64.b64encode(digest).decode("ascii")

    def verify(self, body: bytes, signature: Optional[str]) -> None:
        """Raise SignatureInvalid unless signature matches body."""
        if not self._channel_secret:
            logger.warning("Channel secret not set - rejecting webhook")
            raise SignatureInvalid("channel secret is not configured")
        if not signature:
            raise SignatureInvalid(f"missing {SIGNATURE_HEADER} header")
        expected = self.compute(body).encode("ascii")
        try:
            actual = signature.encode("ascii")
        except UnicodeEncodeError as e:
            raise SignatureInvalid("signature is not ascii") from e
        if not hmac.compare_digest(expected, actual):
            raise SignatureInvalid("signature does not match request body")
