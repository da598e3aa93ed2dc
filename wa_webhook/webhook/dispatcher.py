"""Observer registry for webhook events.

Handlers are called one at a time, in the order they were registered, and
each is awaited before the next runs. A failing handler never stops the
others: its exception is re-emitted as an ``error`` event, except when the
failing handler was itself handling an ``error`` event.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Literal, TypeVar, overload

from wa_webhook.webhook.events import (
    MessageReceivedEvent,
    StatusUpdatedEvent,
    WebhookErrorEvent,
    WebhookEvent,
    WebhookEventType,
)

logger = logging.getLogger(__name__)

E = TypeVar("E")
EventHandler = Callable[[E], Awaitable[None] | None]
Unsubscribe = Callable[[], None]
EventTypeLike = WebhookEventType | str


class EventDispatcher:
    """Per-event-type subscriber lists owned by one handler instance."""

    def __init__(self) -> None:
        self._listeners: dict[WebhookEventType, list[EventHandler[Any]]] = {}

    @overload
    def on(
        self,
        event_type: Literal[WebhookEventType.MESSAGE_RECEIVED, "message:received"],
        handler: EventHandler[MessageReceivedEvent],
    ) -> Unsubscribe: ...

    @overload
    def on(
        self,
        event_type: Literal[WebhookEventType.STATUS_UPDATED, "status:updated"],
        handler: EventHandler[StatusUpdatedEvent],
    ) -> Unsubscribe: ...

    @overload
    def on(
        self,
        event_type: Literal[WebhookEventType.ERROR, "error"],
        handler: EventHandler[WebhookErrorEvent],
    ) -> Unsubscribe: ...

    def on(self, event_type: EventTypeLike, handler: EventHandler[Any]) -> Unsubscribe:
        """Subscribe ``handler`` to ``event_type`` and return an unsubscribe callable.

        Subscribing the same handler twice to one type has no further effect.
        """
        key = WebhookEventType(event_type)
        handlers = self._listeners.setdefault(key, [])
        if handler not in handlers:
            handlers.append(handler)

        def unsubscribe() -> None:
            self.off(key, handler)

        return unsubscribe

    def off(self, event_type: EventTypeLike, handler: EventHandler[Any]) -> None:
        """Remove ``handler``; a no-op if it is not subscribed."""
        handlers = self._listeners.get(WebhookEventType(event_type))
        if handlers and handler in handlers:
            handlers.remove(handler)

    def listener_count(self, event_type: EventTypeLike) -> int:
        return len(self._listeners.get(WebhookEventType(event_type), ()))

    def clear(self) -> None:
        self._listeners.clear()

    async def emit(self, event: WebhookEvent) -> None:
        """Deliver ``event`` to every handler registered for its type."""
        # Snapshot so handlers may unsubscribe while being called
        for handler in list(self._listeners.get(event.type, ())):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                if event.type is WebhookEventType.ERROR:
                    logger.exception("Error handler %r failed; not re-emitting", handler)
                    continue
                logger.exception(
                    "Subscriber %r failed while handling %s", handler, event.type.value,
                )
                await self.emit(WebhookErrorEvent(
                    error=exc,
                    context={"original_event": event},
                ))
