"""SQLite message store.

Persists inbound/outbound messages keyed by their WhatsApp message id (wamid)
and keeps a log of processed webhook events.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from wa_webhook.models import MessageStatus
from wa_webhook.storage.base import Conversation, MessageRecord

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS whatsapp_messages (
    wamid TEXT PRIMARY KEY,
    phone_number_id TEXT NOT NULL,
    customer_number TEXT NOT NULL,
    type TEXT NOT NULL,
    content TEXT NOT NULL,
    direction TEXT NOT NULL,
    status TEXT NOT NULL,
    timestamp REAL NOT NULL,
    metadata_json TEXT NOT NULL DEFAULT '{}',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_messages_thread
    ON whatsapp_messages(phone_number_id, customer_number, timestamp);

CREATE TABLE IF NOT EXISTS webhook_events (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    event_type TEXT NOT NULL,
    payload_json TEXT NOT NULL,
    created_at TEXT NOT NULL
);
"""

_CONVERSATIONS_SQL = """
SELECT
    m1.customer_number,
    (
        SELECT m2.content FROM whatsapp_messages m2
        WHERE m2.customer_number = m1.customer_number
          AND m2.phone_number_id = m1.phone_number_id
        ORDER BY m2.timestamp DESC LIMIT 1
    ) AS last_message,
    MAX(m1.timestamp) AS last_message_time,
    SUM(CASE WHEN m1.direction = 'inbound' AND m1.status != 'read' THEN 1 ELSE 0 END)
        AS unread_count
FROM whatsapp_messages m1
WHERE m1.phone_number_id = ?
GROUP BY m1.customer_number
ORDER BY last_message_time DESC
"""


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class SQLiteMessageStore:
    """SQLite-backed implementation of MessageStore and MessageHistory.

    Uses WAL mode and parameterized queries. Calls run on the caller's thread;
    share one instance per event loop.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(db_path)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(SCHEMA_SQL)
        self._conn.commit()

    async def save_message(self, record: MessageRecord) -> None:
        """Insert a message, or refresh status/metadata if the wamid is known."""
        now = _now_iso()
        self._conn.execute(
            """INSERT INTO whatsapp_messages
               (wamid, phone_number_id, customer_number, type, content, direction,
                status, timestamp, metadata_json, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(wamid) DO UPDATE SET
                 status=excluded.status, metadata_json=excluded.metadata_json,
                 updated_at=excluded.updated_at""",
            (
                record.wamid,
                record.phone_number_id,
                record.customer_number,
                record.type.value,
                record.content,
                record.direction.value,
                record.status.value,
                record.timestamp.timestamp(),
                json.dumps(record.metadata),
                now,
                now,
            ),
        )
        self._conn.commit()
        logger.debug("Saved message %s", record.wamid)

    async def update_status(self, wamid: str, status: MessageStatus) -> None:
        cursor = self._conn.execute(
            "UPDATE whatsapp_messages SET status = ?, updated_at = ? WHERE wamid = ?",
            (MessageStatus(status).value, _now_iso(), wamid),
        )
        self._conn.commit()
        if cursor.rowcount == 0:
            logger.warning("Status update for unknown message %s ignored", wamid)

    async def get_history(
        self, customer_number: str, phone_number_id: str,
    ) -> list[MessageRecord]:
        rows = self._conn.execute(
            """SELECT * FROM whatsapp_messages
               WHERE customer_number = ? AND phone_number_id = ?
               ORDER BY timestamp ASC""",
            (customer_number, phone_number_id),
        ).fetchall()
        return [self._to_record(row) for row in rows]

    async def get_conversations(self, phone_number_id: str) -> list[Conversation]:
        rows = self._conn.execute(_CONVERSATIONS_SQL, (phone_number_id,)).fetchall()
        return [
            Conversation(
                customer_number=row["customer_number"],
                phone_number_id=phone_number_id,
                last_message=row["last_message"],
                last_message_time=datetime.fromtimestamp(row["last_message_time"], UTC),
                unread_count=row["unread_count"],
            )
            for row in rows
        ]

    def log_webhook_event(self, event_type: str, payload: dict[str, Any]) -> None:
        """Record a processed webhook event for later inspection."""
        self._conn.execute(
            "INSERT INTO webhook_events (event_type, payload_json, created_at) VALUES (?, ?, ?)",
            (event_type, json.dumps(payload, default=str), _now_iso()),
        )
        self._conn.commit()

    def list_webhook_events(self, limit: int = 100) -> list[dict[str, Any]]:
        rows = self._conn.execute(
            "SELECT * FROM webhook_events ORDER BY id DESC LIMIT ?", (limit,),
        ).fetchall()
        return [
            {
                "id": row["id"],
                "event_type": row["event_type"],
                "payload": json.loads(row["payload_json"]),
                "created_at": row["created_at"],
            }
            for row in rows
        ]

    def close(self) -> None:
        self._conn.close()

    @staticmethod
    def _to_record(row: sqlite3.Row) -> MessageRecord:
        return MessageRecord(
            wamid=row["wamid"],
            phone_number_id=row["phone_number_id"],
            customer_number=row["customer_number"],
            type=row["type"],
            content=row["content"],
            direction=row["direction"],
            status=row["status"],
            timestamp=datetime.fromtimestamp(row["timestamp"], UTC),
            metadata=json.loads(row["metadata_json"]),
        )
