"""Meta webhook subscription handshake (GET hub.* parameters)."""

from __future__ import annotations

import hmac
import logging
from collections.abc import Mapping, Sequence

from wa_webhook.webhook.errors import HandshakeFailedError

logger = logging.getLogger(__name__)

SUBSCRIBE_MODE = "subscribe"

QueryValue = str | Sequence[str] | None


class SubscriptionHandshake:
    """Answers the one-time challenge Meta sends to confirm endpoint ownership."""

    def __init__(self, verify_token: str) -> None:
        self._verify_token = verify_token.encode()

    def verify(self, query: Mapping[str, QueryValue]) -> str:
        """Return ``hub.challenge`` if mode and token match, else raise.

        Repeated parameters (list values) are never accepted.
        """
        mode = query.get("hub.mode")
        token = query.get("hub.verify_token")
        challenge = query.get("hub.challenge")

        if (
            isinstance(mode, str)
            and isinstance(token, str)
            and isinstance(challenge, str)
            and mode == SUBSCRIBE_MODE
            and hmac.compare_digest(token.encode(), self._verify_token)
        ):
            logger.debug("Webhook subscription handshake accepted")
            return challenge

        raise HandshakeFailedError()
