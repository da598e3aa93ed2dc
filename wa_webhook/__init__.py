"""WhatsApp Business webhook ingestion pipeline."""

from wa_webhook.config import WebhookConfig
from wa_webhook.webhook.errors import (
    ConfigurationError,
    HandshakeFailedError,
    InvalidPayloadError,
    WebhookError,
)
from wa_webhook.webhook.events import (
    HandleResult,
    HandleStatus,
    MessageReceivedEvent,
    StatusUpdatedEvent,
    WebhookErrorEvent,
    WebhookEventType,
    WebhookMetadata,
)
from wa_webhook.webhook.handler import WhatsAppWebhookHandler

__all__ = [
    "ConfigurationError",
    "HandleResult",
    "HandleStatus",
    "HandshakeFailedError",
    "InvalidPayloadError",
    "MessageReceivedEvent",
    "StatusUpdatedEvent",
    "WebhookConfig",
    "WebhookError",
    "WebhookErrorEvent",
    "WebhookEventType",
    "WebhookMetadata",
    "WhatsAppWebhookHandler",
]
