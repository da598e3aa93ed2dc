"""Tests for WebhookConfig."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from wa_webhook.config import WebhookConfig


def test_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WHATSAPP_VERIFY_TOKEN", "verify-me")
    monkeypatch.setenv("WHATSAPP_APP_SECRET", "s3cret")

    config = WebhookConfig.from_env()

    assert config.verify_token == "verify-me"
    assert config.app_secret == "s3cret"


def test_from_env_without_secret(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WHATSAPP_VERIFY_TOKEN", "verify-me")
    monkeypatch.delenv("WHATSAPP_APP_SECRET", raising=False)
    assert WebhookConfig.from_env().app_secret is None


def test_from_env_requires_verify_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("WHATSAPP_VERIFY_TOKEN", raising=False)
    with pytest.raises(KeyError):
        WebhookConfig.from_env()


def test_blank_secret_is_none() -> None:
    assert WebhookConfig(verify_token="t", app_secret="").app_secret is None


def test_config_is_frozen() -> None:
    config = WebhookConfig(verify_token="t")
    with pytest.raises(ValidationError):
        config.verify_token = "other"  # type: ignore[misc]
