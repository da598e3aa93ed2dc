"""Exceptions raised by the webhook pipeline."""

from __future__ import annotations


class WebhookError(Exception):
    """Base class for webhook pipeline errors."""


class HandshakeFailedError(WebhookError):
    """Subscription handshake rejected.

    The message is deliberately generic: callers must not learn whether the
    mode or the token was wrong.
    """

    def __init__(self) -> None:
        super().__init__("Webhook verification failed")


class ConfigurationError(WebhookError):
    """The handler was asked to do something its configuration cannot support."""


class InvalidPayloadError(WebhookError):
    """Notification envelope is not shaped like a WhatsApp webhook."""
