"""Storage contract consumed by the webhook handler."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, Field

from wa_webhook.models import MessageDirection, MessageStatus, MessageType


class MessageRecord(BaseModel):
    """A message as persisted by a store. The handler builds these but never reads them."""

    wamid: str
    phone_number_id: str
    customer_number: str
    type: MessageType
    content: str
    direction: MessageDirection
    status: MessageStatus
    timestamp: datetime
    metadata: dict[str, Any] = Field(default_factory=dict)


class Conversation(BaseModel):
    """One customer thread on one business phone number."""

    customer_number: str
    phone_number_id: str
    last_message: str
    last_message_time: datetime
    unread_count: int = Field(ge=0)


@runtime_checkable
class MessageStore(Protocol):
    """Write side used by ``WhatsAppWebhookHandler.handle``.

    Implementations must be safe for concurrent use; the handler does no
    locking or deduplication. ``update_status`` for an unknown message id is
    the store's business: the handler only awaits the call.
    """

    async def save_message(self, record: MessageRecord) -> None: ...

    async def update_status(self, wamid: str, status: MessageStatus) -> None: ...


@runtime_checkable
class MessageHistory(Protocol):
    """Read side exposed by the HTTP API and CLI."""

    async def get_history(
        self, customer_number: str, phone_number_id: str,
    ) -> list[MessageRecord]: ...

    async def get_conversations(self, phone_number_id: str) -> list[Conversation]: ...


def summarize_conversations(
    records: Iterable[MessageRecord], phone_number_id: str,
) -> list[Conversation]:
    """Group records by customer, most recently active conversation first.

    Unread counts inbound messages that have not reached ``read``.
    """
    threads: dict[str, list[MessageRecord]] = {}
    for record in records:
        if record.phone_number_id == phone_number_id:
            threads.setdefault(record.customer_number, []).append(record)

    conversations = []
    for customer_number, messages in threads.items():
        last = max(messages, key=lambda m: m.timestamp)
        unread = sum(
            1 for m in messages
            if m.direction == MessageDirection.INBOUND and m.status != MessageStatus.READ
        )
        conversations.append(Conversation(
            customer_number=customer_number,
            phone_number_id=phone_number_id,
            last_message=last.content,
            last_message_time=last.timestamp,
            unread_count=unread,
        ))
    conversations.sort(key=lambda c: c.last_message_time, reverse=True)
    return conversations
