"""Tests for the read-API auth middleware."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from httpx import ASGITransport, AsyncClient
from starlette.applications import Starlette
from starlette.responses import PlainTextResponse
from starlette.routing import Route

from wa_webhook.models import AuditEventType
from wa_webhook.server.auth_middleware import AuthMiddleware

TOKEN = "test-secret-token-12345"


def _create_app(audit_logger: MagicMock | None = None) -> Starlette:
    async def homepage(request):  # noqa: ANN001
        return PlainTextResponse("OK")

    async def health(request):  # noqa: ANN001
        return PlainTextResponse("healthy")

    async def webhook(request):  # noqa: ANN001
        return PlainTextResponse("hook")

    app = Starlette(routes=[
        Route("/", homepage),
        Route("/health", health),
        Route("/webhook", webhook, methods=["GET", "POST"]),
    ])
    return AuthMiddleware(  # type: ignore[return-value]
        app, token=TOKEN, audit_logger=audit_logger, webhook_paths=frozenset({"/webhook"}),
    )


@pytest.mark.asyncio
async def test_valid_token_passes() -> None:
    app = _create_app()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        resp = await client.get("/", headers={"Authorization": f"Bearer {TOKEN}"})
        assert resp.status_code == 200
        assert resp.text == "OK"


@pytest.mark.asyncio
async def test_missing_token_returns_401() -> None:
    app = _create_app()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        resp = await client.get("/")
        assert resp.status_code == 401
        assert resp.json() == {"error": "Authentication required"}


@pytest.mark.asyncio
async def test_non_bearer_scheme_returns_401() -> None:
    app = _create_app()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        resp = await client.get("/", headers={"Authorization": f"Basic {TOKEN}"})
        assert resp.status_code == 401


@pytest.mark.asyncio
async def test_invalid_token_returns_403() -> None:
    app = _create_app()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        resp = await client.get("/", headers={"Authorization": "Bearer wrong-token"})
        assert resp.status_code == 403
        assert "wrong-token" not in resp.text
        assert TOKEN not in resp.text


@pytest.mark.asyncio
async def test_health_and_webhook_exempt() -> None:
    app = _create_app()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        assert (await client.get("/health")).status_code == 200
        assert (await client.get("/webhook")).status_code == 200
        assert (await client.post("/webhook", content=b"{}")).status_code == 200


@pytest.mark.asyncio
async def test_auth_failure_logged() -> None:
    mock_logger = MagicMock()
    app = _create_app(audit_logger=mock_logger)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        await client.get("/", headers={"Authorization": "Bearer wrong"})

    mock_logger.log.assert_called_once()
    event = mock_logger.log.call_args[0][0]
    assert event.event_type == AuditEventType.AUTH_FAILURE
    assert event.details == {"reason": "invalid_token"}


@pytest.mark.asyncio
async def test_missing_token_reason_logged() -> None:
    mock_logger = MagicMock()
    app = _create_app(audit_logger=mock_logger)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        await client.get("/")

    assert mock_logger.log.call_args[0][0].details == {"reason": "missing_token"}


@pytest.mark.asyncio
async def test_success_not_logged() -> None:
    mock_logger = MagicMock()
    app = _create_app(audit_logger=mock_logger)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        await client.get("/", headers={"Authorization": f"Bearer {TOKEN}"})
    mock_logger.log.assert_not_called()
