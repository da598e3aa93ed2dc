"""In-memory message store for development and tests."""

from __future__ import annotations

import logging

from wa_webhook.models import MessageStatus
from wa_webhook.storage.base import Conversation, MessageRecord, summarize_conversations

logger = logging.getLogger(__name__)


class InMemoryMessageStore:
    """Dict-backed store keyed by wamid. Nothing survives a restart.

    Mutations never await, so concurrent handle() calls on one event loop
    cannot interleave inside them.
    """

    def __init__(self) -> None:
        self._messages: dict[str, MessageRecord] = {}

    async def save_message(self, record: MessageRecord) -> None:
        existing = self._messages.get(record.wamid)
        if existing is not None:
            # Redelivered notification: refresh mutable fields only
            self._messages[record.wamid] = existing.model_copy(
                update={"status": record.status, "metadata": record.metadata},
            )
            logger.debug("Refreshed message %s", record.wamid)
            return
        self._messages[record.wamid] = record
        logger.debug("Saved message %s", record.wamid)

    async def update_status(self, wamid: str, status: MessageStatus) -> None:
        record = self._messages.get(wamid)
        if record is None:
            logger.warning("Status update for unknown message %s ignored", wamid)
            return
        self._messages[wamid] = record.model_copy(update={"status": MessageStatus(status)})
        logger.debug("Status for %s is now %s", wamid, MessageStatus(status).value)

    async def get_history(
        self, customer_number: str, phone_number_id: str,
    ) -> list[MessageRecord]:
        history = [
            m for m in self._messages.values()
            if m.customer_number == customer_number and m.phone_number_id == phone_number_id
        ]
        return sorted(history, key=lambda m: m.timestamp)

    async def get_conversations(self, phone_number_id: str) -> list[Conversation]:
        return summarize_conversations(self._messages.values(), phone_number_id)

    def all_messages(self) -> list[MessageRecord]:
        return list(self._messages.values())

    def clear(self) -> None:
        self._messages.clear()
