"""Handler configuration."""

from __future__ import annotations

import os

from pydantic import BaseModel, ConfigDict, field_validator


class WebhookConfig(BaseModel):
    """Credentials shared with the WhatsApp platform.

    ``app_secret`` is optional; without it the handler cannot verify
    payload signatures and says so loudly when asked to.
    """

    model_config = ConfigDict(frozen=True)

    verify_token: str
    app_secret: str | None = None

    @field_validator("app_secret")
    @classmethod
    def _blank_secret_is_absent(cls, value: str | None) -> str | None:
        return value or None

    @classmethod
    def from_env(cls) -> WebhookConfig:
        """Create WebhookConfig from environment variables."""
        return cls(
            verify_token=os.environ["WHATSAPP_VERIFY_TOKEN"],
            app_secret=os.environ.get("WHATSAPP_APP_SECRET"),
        )
