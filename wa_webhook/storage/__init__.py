"""Message storage contract and reference stores."""

from wa_webhook.storage.base import (
    Conversation,
    MessageHistory,
    MessageRecord,
    MessageStore,
)
from wa_webhook.storage.memory import InMemoryMessageStore
from wa_webhook.storage.sqlite import SQLiteMessageStore

__all__ = [
    "Conversation",
    "InMemoryMessageStore",
    "MessageHistory",
    "MessageRecord",
    "MessageStore",
    "SQLiteMessageStore",
]
