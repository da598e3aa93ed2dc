"""Domain events emitted by the webhook handler."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from wa_webhook.webhook.payload import IncomingMessage, StatusUpdate


class WebhookEventType(str, Enum):
    MESSAGE_RECEIVED = "message:received"
    STATUS_UPDATED = "status:updated"
    ERROR = "error"


class HandleStatus(str, Enum):
    MESSAGE_RECEIVED = "message_received"
    STATUS_UPDATED = "status_updated"
    IGNORED = "ignored"
    NO_ACTIONABLE_DATA = "no_actionable_data"


@dataclass(frozen=True)
class WebhookMetadata:
    """Which business number and account a notification concerns."""

    phone_number_id: str
    display_phone_number: str
    waba_id: str


@dataclass(frozen=True)
class MessageReceivedEvent:
    message: IncomingMessage
    metadata: WebhookMetadata
    type: WebhookEventType = field(default=WebhookEventType.MESSAGE_RECEIVED, init=False)


@dataclass(frozen=True)
class StatusUpdatedEvent:
    status: StatusUpdate
    metadata: WebhookMetadata
    type: WebhookEventType = field(default=WebhookEventType.STATUS_UPDATED, init=False)


@dataclass(frozen=True)
class WebhookErrorEvent:
    """A subscriber failed; ``context["original_event"]`` is what it was handling."""

    error: Exception
    context: dict[str, Any] = field(default_factory=dict)
    type: WebhookEventType = field(default=WebhookEventType.ERROR, init=False)


WebhookEvent = MessageReceivedEvent | StatusUpdatedEvent | WebhookErrorEvent


@dataclass(frozen=True)
class HandleResult:
    """Outcome of processing one notification."""

    status: HandleStatus
    id: str | None = None
    value: str | None = None

    def as_dict(self) -> dict[str, str]:
        data = {"status": self.status.value}
        if self.id is not None:
            data["id"] = self.id
        if self.value is not None:
            data["value"] = self.value
        return data
