"""Shared Pydantic data models for the WhatsApp webhook pipeline."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field

# --- Enums ---


class MessageType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    DOCUMENT = "document"
    BUTTON = "button"
    UNKNOWN = "unknown"
    TEMPLATE = "template"  # outbound only


class MessageStatus(str, Enum):
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"
    FAILED = "failed"
    DELETED = "deleted"


class MessageDirection(str, Enum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"


class AuditEventType(str, Enum):
    HANDSHAKE_SUCCESS = "handshake_success"
    HANDSHAKE_FAILURE = "handshake_failure"
    SIGNATURE_INVALID = "signature_invalid"
    NOTIFICATION_PROCESSED = "notification_processed"
    PROCESSING_ERROR = "processing_error"
    SUBSCRIBER_ERROR = "subscriber_error"
    AUTH_FAILURE = "auth_failure"


class RiskLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


# --- Audit Models ---


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class AuditEvent(BaseModel):
    timestamp: str = Field(default_factory=_now_iso)
    event_type: AuditEventType
    source_ip: str | None = None
    action: str
    result: str  # "success" | "failure" | "rejected" | "error"
    risk_level: RiskLevel
    details: dict[str, object] | None = None
