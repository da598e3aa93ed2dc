"""Shared test fixtures for the WhatsApp webhook pipeline."""

from __future__ import annotations

import hashlib
import hmac
from datetime import UTC, datetime
from typing import Any
from unittest.mock import MagicMock

import pytest

from wa_webhook.audit.logger import AuditLogger
from wa_webhook.models import MessageDirection, MessageStatus, MessageType
from wa_webhook.storage.base import MessageRecord
from wa_webhook.storage.memory import InMemoryMessageStore


@pytest.fixture
def mock_store() -> MagicMock:
    """Store double whose async methods are AsyncMocks."""
    return MagicMock(spec=InMemoryMessageStore)


@pytest.fixture
def mock_audit_logger() -> MagicMock:
    return MagicMock(spec=AuditLogger)


# --- Factory functions for test data ---


def sign_body(app_secret: str, body: bytes) -> str:
    """Independent HMAC computation, mirroring what Meta sends."""
    digest = hmac.new(app_secret.encode(), body, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


def make_incoming_message(sender: str = "+0987654321", **kwargs: Any) -> dict[str, Any]:
    """Factory for a wire-format text message; ``sender`` fills the "from" key."""
    message: dict[str, Any] = {
        "from": sender,
        "id": "wamid.TEST123",
        "timestamp": "1700000000",
        "type": "text",
        "text": {"body": "Hello, World!"},
    }
    message.update(kwargs)
    return message


def make_status(**kwargs: Any) -> dict[str, Any]:
    status: dict[str, Any] = {
        "id": "wamid.TEST123",
        "status": "delivered",
        "timestamp": "1700000000",
        "recipient_id": "+0987654321",
    }
    status.update(kwargs)
    return status


def make_envelope(
    value_extra: dict[str, Any] | None = None,
    phone_number_id: str = "PHONE_ID_123",
    display_phone_number: str = "+1234567890",
    waba_id: str = "WABA_ID_123",
) -> dict[str, Any]:
    """Factory for a notification with one entry and one change."""
    value: dict[str, Any] = {
        "messaging_product": "whatsapp",
        "metadata": {
            "display_phone_number": display_phone_number,
            "phone_number_id": phone_number_id,
        },
    }
    value.update(value_extra or {})
    return {
        "object": "whatsapp_business_account",
        "entry": [{
            "id": waba_id,
            "changes": [{"value": value, "field": "messages"}],
        }],
    }


def make_message_payload(
    phone_number_id: str = "PHONE_ID_123", **message_kwargs: Any,
) -> dict[str, Any]:
    return make_envelope(
        {"messages": [make_incoming_message(**message_kwargs)]},
        phone_number_id=phone_number_id,
    )


def make_status_payload(**status_kwargs: Any) -> dict[str, Any]:
    return make_envelope({"statuses": [make_status(**status_kwargs)]})


def make_record(**kwargs: Any) -> MessageRecord:
    """Factory for MessageRecord with sensible defaults."""
    defaults: dict[str, Any] = {
        "wamid": "wamid.REC1",
        "phone_number_id": "PHONE_ID_123",
        "customer_number": "+15551234567",
        "type": MessageType.TEXT,
        "content": "hello",
        "direction": MessageDirection.INBOUND,
        "status": MessageStatus.DELIVERED,
        "timestamp": datetime(2024, 1, 1, 12, 0, tzinfo=UTC),
    }
    defaults.update(kwargs)
    return MessageRecord(**defaults)
