"""FastAPI adapter exposing the webhook handler over HTTP."""

from __future__ import annotations

import json
import logging
import os
from typing import Any

from fastapi import BackgroundTasks, FastAPI, Query, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse

from wa_webhook.audit.logger import AuditLogger
from wa_webhook.config import WebhookConfig
from wa_webhook.models import AuditEvent, AuditEventType, RiskLevel
from wa_webhook.server.auth_middleware import AuthMiddleware
from wa_webhook.storage.base import MessageHistory, MessageStore
from wa_webhook.storage.memory import InMemoryMessageStore
from wa_webhook.storage.sqlite import SQLiteMessageStore
from wa_webhook.webhook.errors import ConfigurationError, HandshakeFailedError
from wa_webhook.webhook.events import (
    MessageReceivedEvent,
    StatusUpdatedEvent,
    WebhookErrorEvent,
)
from wa_webhook.webhook.handler import WhatsAppWebhookHandler
from wa_webhook.webhook.signature import SIGNATURE_HEADER

logger = logging.getLogger(__name__)

WEBHOOK_PATH = "/webhook"
_MAX_WEBHOOK_BODY_SIZE = 1024 * 1024  # 1 MiB


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def create_app_from_env() -> FastAPI:
    """Factory for uvicorn --factory: reads config from environment variables."""
    config = WebhookConfig.from_env()
    db_path = os.environ.get("MESSAGE_DB_PATH")
    store: MessageStore = SQLiteMessageStore(db_path) if db_path else InMemoryMessageStore()
    audit_log = os.environ.get("AUDIT_LOG_PATH")
    audit_logger = AuditLogger.from_env(audit_log) if audit_log else None

    handler = WhatsAppWebhookHandler(config, store)
    if isinstance(store, SQLiteMessageStore):
        journal_events(handler, store)

    return create_app(
        handler,
        store=store,
        audit_logger=audit_logger,
        api_token=os.environ.get("API_TOKEN") or None,
        max_body_size=int(os.environ.get("WEBHOOK_MAX_BODY_BYTES", _MAX_WEBHOOK_BODY_SIZE)),
        require_signature=_env_flag(
            "WHATSAPP_REQUIRE_SIGNATURE", default=handler.can_verify_signatures,
        ),
    )


def journal_events(handler: WhatsAppWebhookHandler, store: SQLiteMessageStore) -> None:
    """Subscribe handlers that record every dispatched event in the store."""

    def on_message(event: MessageReceivedEvent) -> None:
        store.log_webhook_event(event.type.value, {
            "message_id": event.message.id,
            "from": event.message.from_,
            "type": event.message.raw_type,
            "metadata": vars(event.metadata),
        })

    def on_status(event: StatusUpdatedEvent) -> None:
        store.log_webhook_event(event.type.value, {
            "message_id": event.status.id,
            "status": event.status.status.value,
            "recipient_id": event.status.recipient_id,
            "metadata": vars(event.metadata),
        })

    def on_error(event: WebhookErrorEvent) -> None:
        store.log_webhook_event(event.type.value, {
            "error": str(event.error),
            "error_type": type(event.error).__name__,
        })

    handler.on("message:received", on_message)
    handler.on("status:updated", on_status)
    handler.on("error", on_error)


def create_app(
    handler: WhatsAppWebhookHandler,
    store: MessageStore | None = None,
    audit_logger: AuditLogger | None = None,
    api_token: str | None = None,
    max_body_size: int = _MAX_WEBHOOK_BODY_SIZE,
    require_signature: bool | None = None,
) -> FastAPI:
    """Create the webhook app.

    ``require_signature`` defaults to whether the handler has an app secret;
    requiring signatures without one is a configuration error.
    """
    if require_signature is None:
        require_signature = handler.can_verify_signatures
    if require_signature and not handler.can_verify_signatures:
        raise ConfigurationError("Signature checks required but no app secret is configured")

    app = FastAPI(docs_url=None, redoc_url=None)

    def audit(
        event_type: AuditEventType,
        request: Request | None,
        result: str,
        risk_level: RiskLevel,
        details: dict[str, object] | None = None,
    ) -> None:
        if audit_logger is None:
            return
        audit_logger.log(AuditEvent(
            event_type=event_type,
            source_ip=request.client.host if request is not None and request.client else None,
            action=f"{request.method} {request.url.path}" if request is not None else "dispatch",
            result=result,
            risk_level=risk_level,
            details=details,
        ))

    def audit_subscriber_error(event: WebhookErrorEvent) -> None:
        audit(
            AuditEventType.SUBSCRIBER_ERROR, None, "error", RiskLevel.MEDIUM,
            {"error": str(event.error), "error_type": type(event.error).__name__},
        )

    if audit_logger is not None:
        handler.on("error", audit_subscriber_error)

    async def process_notification(request: Request, payload: dict[str, Any]) -> None:
        # Runs after the acknowledgment has been sent
        try:
            result = await handler.handle(payload)
        except Exception as exc:
            logger.exception("Webhook processing failed")
            audit(
                AuditEventType.PROCESSING_ERROR, request, "error", RiskLevel.MEDIUM,
                {"error": str(exc), "error_type": type(exc).__name__},
            )
            return
        logger.info("Processed webhook notification: %s", result.as_dict())
        audit(
            AuditEventType.NOTIFICATION_PROCESSED, request, "success", RiskLevel.INFO,
            dict(result.as_dict()),
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get(WEBHOOK_PATH)
    async def verify_subscription(request: Request) -> Response:
        query: dict[str, str | list[str]] = {}
        for key in request.query_params:
            values = request.query_params.getlist(key)
            query[key] = values[0] if len(values) == 1 else values
        try:
            challenge = handler.verify(query)
        except HandshakeFailedError:
            logger.warning("Webhook subscription handshake rejected")
            audit(AuditEventType.HANDSHAKE_FAILURE, request, "rejected", RiskLevel.HIGH)
            return JSONResponse({"error": "Verification failed"}, status_code=403)
        audit(AuditEventType.HANDSHAKE_SUCCESS, request, "success", RiskLevel.INFO)
        return PlainTextResponse(challenge)

    @app.post(WEBHOOK_PATH)
    async def receive_notification(
        request: Request, background_tasks: BackgroundTasks,
    ) -> Response:
        body = await request.body()
        if len(body) > max_body_size:
            return JSONResponse({"error": "Request body too large"}, status_code=413)

        if require_signature and not handler.verify_signature(
            body, request.headers.get(SIGNATURE_HEADER),
        ):
            audit(AuditEventType.SIGNATURE_INVALID, request, "rejected", RiskLevel.HIGH)
            return JSONResponse({"error": "Invalid webhook signature"}, status_code=401)

        try:
            payload = json.loads(body)
        except ValueError:
            return JSONResponse({"error": "Invalid JSON payload"}, status_code=400)
        if not isinstance(payload, dict):
            return JSONResponse({"error": "Invalid JSON payload"}, status_code=400)

        background_tasks.add_task(process_notification, request, payload)
        return JSONResponse({"status": "received"})

    if isinstance(store, MessageHistory):
        history = store

        @app.get("/api/messages")
        async def message_history(
            customer_number: str, phone_number_id: str,
        ) -> list[dict[str, Any]]:
            records = await history.get_history(customer_number, phone_number_id)
            return [r.model_dump(mode="json") for r in records]

        @app.get("/api/conversations")
        async def conversations(phone_number_id: str) -> list[dict[str, Any]]:
            items = await history.get_conversations(phone_number_id)
            return [c.model_dump(mode="json") for c in items]

    if isinstance(store, SQLiteMessageStore):
        journal = store

        @app.get("/api/events")
        async def webhook_events(
            limit: int = Query(50, ge=1, le=500),
        ) -> list[dict[str, Any]]:
            return journal.list_webhook_events(limit)

    if api_token:
        app.add_middleware(
            AuthMiddleware,
            token=api_token,
            audit_logger=audit_logger,
            webhook_paths=frozenset({WEBHOOK_PATH}),
        )

    return app
