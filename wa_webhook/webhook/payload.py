"""Pydantic models for the WhatsApp Business webhook envelope.

The platform's payload is loosely specified: most fields are optional and new
message types appear without notice. Message content is parsed into an
explicit per-type body, with ``UnknownBody`` keeping the raw section for any
type not modelled here.

Reference: https://developers.facebook.com/docs/whatsapp/cloud-api/webhooks/components
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator

from wa_webhook.models import MessageStatus, MessageType

# --- Message bodies ---


class TextBody(BaseModel):
    kind: Literal["text"] = "text"
    text: str = ""


class MediaBody(BaseModel):
    kind: Literal["image", "video", "document"]
    media_id: str | None = None
    mime_type: str | None = None
    sha256: str | None = None
    caption: str | None = None
    filename: str | None = None


class ButtonBody(BaseModel):
    kind: Literal["button"] = "button"
    text: str = ""
    payload: str | None = None


class UnknownBody(BaseModel):
    kind: Literal["unknown"] = "unknown"
    raw_type: str
    raw: dict[str, Any] = Field(default_factory=dict)


MessageBody = Annotated[
    TextBody | MediaBody | ButtonBody | UnknownBody,
    Field(discriminator="kind"),
]

_MEDIA_TYPES = frozenset({"image", "video", "document"})


def _unix_seconds(value: object) -> object:
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, str) and not value.isdigit():
        raise ValueError("timestamp must be unix seconds")
    return value


UnixSeconds = Annotated[str, BeforeValidator(_unix_seconds)]


def _parse_body(raw_type: str, section: object) -> dict[str, Any]:
    data = section if isinstance(section, dict) else {}
    if raw_type == "text":
        return {"kind": "text", "text": data.get("body", "")}
    if raw_type in _MEDIA_TYPES:
        return {
            "kind": raw_type,
            "media_id": data.get("id"),
            "mime_type": data.get("mime_type"),
            "sha256": data.get("sha256"),
            "caption": data.get("caption"),
            "filename": data.get("filename"),
        }
    if raw_type == "button":
        return {"kind": "button", "text": data.get("text", ""), "payload": data.get("payload")}
    return {"kind": "unknown", "raw_type": raw_type, "raw": data}


# --- Messages and statuses ---


class IncomingMessage(BaseModel):
    """A customer -> business message."""

    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(alias="from")
    id: str
    timestamp: UnixSeconds
    type: MessageType
    raw_type: str
    body: MessageBody
    raw: dict[str, Any] = Field(default_factory=dict, repr=False)

    @model_validator(mode="before")
    @classmethod
    def _split_body(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "body" in data:
            return data
        raw_type = str(data.get("type") or "unknown")
        body = _parse_body(raw_type, data.get(raw_type))
        return {
            **data,
            "type": body["kind"],
            "raw_type": raw_type,
            "body": body,
            "raw": dict(data),
        }

    @property
    def text(self) -> str | None:
        """Text body for text messages, None otherwise."""
        if isinstance(self.body, TextBody):
            return self.body.text
        return None

    @property
    def sent_at(self) -> datetime:
        return datetime.fromtimestamp(int(self.timestamp), UTC)


class StatusUpdate(BaseModel):
    """Delivery status of a business -> customer message."""

    id: str
    status: MessageStatus
    timestamp: UnixSeconds
    recipient_id: str = ""
    errors: list[dict[str, Any]] = Field(default_factory=list)


# --- Envelope ---


class ChangeMetadata(BaseModel):
    display_phone_number: str = ""
    phone_number_id: str = ""


class ChangeValue(BaseModel):
    messaging_product: str = "whatsapp"
    metadata: ChangeMetadata = Field(default_factory=ChangeMetadata)
    messages: list[IncomingMessage] = Field(default_factory=list)
    statuses: list[StatusUpdate] = Field(default_factory=list)


class Change(BaseModel):
    field: str = "messages"
    value: ChangeValue | None = None


class Entry(BaseModel):
    id: str = ""  # WABA ID
    changes: list[Change] = Field(default_factory=list)


class WebhookPayload(BaseModel):
    object: str = "whatsapp_business_account"
    entry: list[Entry] = Field(default_factory=list)
