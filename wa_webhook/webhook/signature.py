"""HMAC-SHA256 verification of the X-Hub-Signature-256 header."""

from __future__ import annotations

import hashlib
import hmac
import logging
import re

from wa_webhook.webhook.errors import ConfigurationError

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-hub-signature-256"
_PREFIX = "sha256="
_HEX_DIGEST = re.compile(r"[0-9a-fA-F]{64}")


def compute_signature(secret: str, body: bytes | str) -> str:
    """Return the header value the platform would send for ``body``."""
    if isinstance(body, str):
        body = body.encode()
    digest = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return f"{_PREFIX}{digest}"


class SignatureVerifier:
    """Checks that a payload was signed with the shared app secret."""

    def __init__(self, app_secret: str | None) -> None:
        self._app_secret = app_secret

    @property
    def configured(self) -> bool:
        return self._app_secret is not None

    def verify_signature(
        self, raw_body: bytes | str, signature_header: str | None,
    ) -> bool:
        """Verify ``signature_header`` against the exact raw request body.

        The body must be the bytes as received: re-serialized JSON will not
        match. Returns False for any malformed or mismatching header and
        raises ConfigurationError only when no secret is configured.
        """
        if self._app_secret is None:
            raise ConfigurationError(
                "Signature verification requested but no app secret is configured",
            )

        if not signature_header or not signature_header.startswith(_PREFIX):
            logger.warning("Rejected webhook signature: missing or unsupported prefix")
            return False

        digest = signature_header[len(_PREFIX):]
        if not _HEX_DIGEST.fullmatch(digest):
            logger.warning("Rejected webhook signature: digest is not 64 hex characters")
            return False
        presented = bytes.fromhex(digest)

        if isinstance(raw_body, str):
            raw_body = raw_body.encode()
        expected = hmac.new(
            self._app_secret.encode(), raw_body, hashlib.sha256,
        ).digest()

        if not hmac.compare_digest(presented, expected):
            logger.warning("Rejected webhook signature: digest mismatch")
            return False
        return True
