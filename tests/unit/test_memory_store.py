"""Tests for InMemoryMessageStore."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from tests.conftest import make_record
from wa_webhook.models import MessageDirection, MessageStatus
from wa_webhook.storage.base import MessageHistory, MessageStore
from wa_webhook.storage.memory import InMemoryMessageStore


def test_satisfies_store_protocols() -> None:
    store = InMemoryMessageStore()
    assert isinstance(store, MessageStore)
    assert isinstance(store, MessageHistory)


@pytest.mark.asyncio
async def test_save_and_read_history() -> None:
    store = InMemoryMessageStore()
    await store.save_message(make_record(wamid="wamid.B", timestamp=datetime(2024, 1, 2, tzinfo=UTC)))
    await store.save_message(make_record(wamid="wamid.A", timestamp=datetime(2024, 1, 1, tzinfo=UTC)))
    await store.save_message(make_record(wamid="wamid.OTHER", customer_number="+19998887777"))

    history = await store.get_history("+15551234567", "PHONE_ID_123")

    assert [r.wamid for r in history] == ["wamid.A", "wamid.B"]


@pytest.mark.asyncio
async def test_history_scoped_to_business_number() -> None:
    store = InMemoryMessageStore()
    await store.save_message(make_record(wamid="wamid.1", phone_number_id="PHONE_A"))
    await store.save_message(make_record(wamid="wamid.2", phone_number_id="PHONE_B"))

    history = await store.get_history("+15551234567", "PHONE_B")

    assert [r.wamid for r in history] == ["wamid.2"]


@pytest.mark.asyncio
async def test_resave_refreshes_status_and_metadata_only() -> None:
    store = InMemoryMessageStore()
    await store.save_message(make_record(content="original", metadata={"v": 1}))
    await store.save_message(make_record(
        content="changed", status=MessageStatus.READ, metadata={"v": 2},
    ))

    [record] = store.all_messages()
    assert record.content == "original"
    assert record.status is MessageStatus.READ
    assert record.metadata == {"v": 2}


@pytest.mark.asyncio
async def test_update_status() -> None:
    store = InMemoryMessageStore()
    await store.save_message(make_record(wamid="wamid.S"))

    await store.update_status("wamid.S", MessageStatus.READ)

    assert store.all_messages()[0].status is MessageStatus.READ


@pytest.mark.asyncio
async def test_update_status_unknown_id_logs_warning(caplog: pytest.LogCaptureFixture) -> None:
    store = InMemoryMessageStore()
    with caplog.at_level("WARNING", logger="wa_webhook.storage.memory"):
        await store.update_status("wamid.MISSING", MessageStatus.READ)
    assert store.all_messages() == []
    assert "wamid.MISSING" in caplog.text


@pytest.mark.asyncio
async def test_conversations_summary() -> None:
    store = InMemoryMessageStore()
    await store.save_message(make_record(
        wamid="wamid.1", content="first", timestamp=datetime(2024, 1, 1, tzinfo=UTC),
    ))
    await store.save_message(make_record(
        wamid="wamid.2", content="second", timestamp=datetime(2024, 1, 3, tzinfo=UTC),
        status=MessageStatus.READ,
    ))
    await store.save_message(make_record(
        wamid="wamid.3", content="reply", timestamp=datetime(2024, 1, 2, tzinfo=UTC),
        direction=MessageDirection.OUTBOUND, status=MessageStatus.SENT,
    ))
    await store.save_message(make_record(
        wamid="wamid.4", customer_number="+19998887777", content="other",
        timestamp=datetime(2024, 1, 4, tzinfo=UTC),
    ))
    await store.save_message(make_record(wamid="wamid.5", phone_number_id="ELSEWHERE"))

    conversations = await store.get_conversations("PHONE_ID_123")

    assert [c.customer_number for c in conversations] == ["+19998887777", "+15551234567"]
    thread = conversations[1]
    assert thread.last_message == "second"
    assert thread.last_message_time == datetime(2024, 1, 3, tzinfo=UTC)
    assert thread.unread_count == 1


@pytest.mark.asyncio
async def test_clear() -> None:
    store = InMemoryMessageStore()
    await store.save_message(make_record())
    store.clear()
    assert store.all_messages() == []
