"""WhatsApp webhook handler: handshake, signature check, and notification processing.

Typical wiring in an HTTP adapter::

    handler = WhatsAppWebhookHandler(WebhookConfig.from_env(), store)
    handler.on("message:received", on_message)

    # GET  -> handler.verify(query_params)
    # POST -> handler.verify_signature(raw_body, header), then handler.handle(json)
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from wa_webhook.config import WebhookConfig
from wa_webhook.models import MessageDirection, MessageStatus
from wa_webhook.storage.base import MessageRecord, MessageStore
from wa_webhook.webhook.dispatcher import EventDispatcher, EventHandler, EventTypeLike, Unsubscribe
from wa_webhook.webhook.errors import InvalidPayloadError
from wa_webhook.webhook.events import (
    HandleResult,
    HandleStatus,
    MessageReceivedEvent,
    StatusUpdatedEvent,
    WebhookMetadata,
)
from wa_webhook.webhook.handshake import QueryValue, SubscriptionHandshake
from wa_webhook.webhook.payload import ChangeValue, Entry, IncomingMessage, WebhookPayload
from wa_webhook.webhook.signature import SignatureVerifier

logger = logging.getLogger(__name__)


def build_inbound_record(
    message: IncomingMessage, metadata: WebhookMetadata,
) -> MessageRecord:
    """Storage record for a customer message.

    Inbound messages have reached the business by definition, so they start
    as ``delivered``. Media bytes are not fetched; content is a placeholder.
    """
    content = message.text if message.text is not None else f"Media: {message.raw_type}"
    return MessageRecord(
        wamid=message.id,
        phone_number_id=metadata.phone_number_id,
        customer_number=message.from_,
        type=message.type,
        content=content,
        direction=MessageDirection.INBOUND,
        status=MessageStatus.DELIVERED,
        timestamp=message.sent_at,
        metadata=message.raw,
    )


class WhatsAppWebhookHandler:
    """Turns WhatsApp webhook notifications into stored records and events.

    The handler owns its subscriber registry; call ``close()`` to drop all
    subscriptions when the handler is retired.
    """

    def __init__(
        self,
        config: WebhookConfig,
        store: MessageStore | None = None,
    ) -> None:
        self.config = config
        self._store = store
        self._handshake = SubscriptionHandshake(config.verify_token)
        self._verifier = SignatureVerifier(config.app_secret)
        self._dispatcher = EventDispatcher()

    @property
    def can_verify_signatures(self) -> bool:
        return self._verifier.configured

    # --- Subscriptions ---

    def on(self, event_type: EventTypeLike, handler: EventHandler[Any]) -> Unsubscribe:
        """Subscribe to ``message:received``, ``status:updated`` or ``error``."""
        return self._dispatcher.on(event_type, handler)  # type: ignore[call-overload]

    def off(self, event_type: EventTypeLike, handler: EventHandler[Any]) -> None:
        self._dispatcher.off(event_type, handler)

    def close(self) -> None:
        self._dispatcher.clear()

    # --- Verification ---

    def verify(self, query: Mapping[str, QueryValue]) -> str:
        """Answer the subscription handshake; raises HandshakeFailedError."""
        return self._handshake.verify(query)

    def verify_signature(self, raw_body: bytes | str, signature_header: str | None) -> bool:
        """Check X-Hub-Signature-256 over the raw body; raises ConfigurationError without a secret."""
        return self._verifier.verify_signature(raw_body, signature_header)

    # --- Processing ---

    async def handle(self, payload: Mapping[str, Any] | WebhookPayload) -> HandleResult:
        """Process one notification.

        Only the first entry, change, and message (or status) are acted on.
        Messages take precedence over statuses in the same change. Store
        failures propagate; subscriber failures are reported as ``error``
        events and never raise from here.
        """
        envelope = self._parse(payload)

        entry = envelope.entry[0] if envelope.entry else None
        change = entry.changes[0] if entry is not None and entry.changes else None
        if entry is None or change is None or change.value is None:
            return HandleResult(HandleStatus.IGNORED)

        value = change.value
        self._warn_unprocessed(envelope, entry, value)
        metadata = WebhookMetadata(
            phone_number_id=value.metadata.phone_number_id,
            display_phone_number=value.metadata.display_phone_number,
            waba_id=entry.id,
        )

        if value.messages:
            message = value.messages[0]
            if self._store is not None:
                await self._store.save_message(build_inbound_record(message, metadata))
            await self._dispatcher.emit(MessageReceivedEvent(message=message, metadata=metadata))
            return HandleResult(HandleStatus.MESSAGE_RECEIVED, id=message.id)

        if value.statuses:
            status = value.statuses[0]
            if self._store is not None:
                await self._store.update_status(status.id, status.status)
            await self._dispatcher.emit(StatusUpdatedEvent(status=status, metadata=metadata))
            return HandleResult(
                HandleStatus.STATUS_UPDATED, id=status.id, value=status.status.value,
            )

        return HandleResult(HandleStatus.NO_ACTIONABLE_DATA)

    @staticmethod
    def _parse(payload: Mapping[str, Any] | WebhookPayload) -> WebhookPayload:
        if isinstance(payload, WebhookPayload):
            return payload
        try:
            return WebhookPayload.model_validate(payload)
        except ValidationError as exc:
            raise InvalidPayloadError(f"Malformed webhook payload: {exc}") from exc

    @staticmethod
    def _warn_unprocessed(envelope: WebhookPayload, entry: Entry, value: ChangeValue) -> None:
        dropped = len(envelope.entry) - 1 + len(entry.changes) - 1
        if value.messages:
            dropped += len(value.messages) - 1 + len(value.statuses)
        else:
            dropped += max(len(value.statuses) - 1, 0)
        if dropped:
            logger.warning(
                "Notification carried %d item(s) beyond the first; they were not processed",
                dropped,
            )
