"""Versioned snapshot stored on every delivery record.

The snapshot keeps enough of the recipient and the originating event to
resend the notification on the record's single channel without running
recipient resolution again.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Mapping

from notification_engine.domain.exceptions import MalformedSnapshotError

from .notification_request import NotificationRequest
from .recipient import RecipientStrategy, ResolvedRecipient

SNAPSHOT_VERSION = 1
DEFAULT_ENTITY_TYPE = "user"

# Older documents used camelCase keys.
_LEGACY_KEYS = {
    "userId": "user_id",
    "recipientType": "recipient_type",
    "entityType": "entity_type",
    "entityId": "entity_id",
    "retryAttempts": "retry_attempts",
    "createdAt": "created_at",
}


@dataclass(frozen=True)
class RecipientSnapshot:
    user_id: str | None
    email: str | None
    recipient_type: str | None
    phone: str | None = None
    name: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_recipient(cls, recipient: ResolvedRecipient) -> "RecipientSnapshot":
        return cls(
            user_id=recipient.user_id,
            email=recipient.email,
            recipient_type=recipient.recipient_type,
            phone=recipient.phone,
            name=recipient.name,
            metadata=dict(recipient.metadata or {}),
        )

    def to_recipient(self, *, default_user_id: str) -> ResolvedRecipient:
        return ResolvedRecipient(
            user_id=self.user_id or default_user_id,
            email=self.email,
            recipient_type=self.recipient_type,
            phone=self.phone,
            name=self.name,
            metadata=dict(self.metadata or {}),
        )


@dataclass(frozen=True)
class EventSnapshot:
    type: str | None = None
    entity_type: str | None = None
    entity_id: str | None = None
    context: dict[str, Any] = field(default_factory=dict)
    timestamp: str | None = None


@dataclass(frozen=True)
class PayloadSnapshot:
    """Recipient plus event data captured when a delivery record is created."""

    recipient: RecipientSnapshot
    event: EventSnapshot
    retry_attempts: int = 0
    created_at: str | None = None
    version: int = SNAPSHOT_VERSION

    @classmethod
    def capture(
        cls,
        recipient: ResolvedRecipient,
        request: NotificationRequest,
        *,
        captured_at: datetime,
    ) -> "PayloadSnapshot":
        timestamp = captured_at.isoformat()
        return cls(
            recipient=RecipientSnapshot.from_recipient(recipient),
            event=EventSnapshot(
                type=request.event_type,
                entity_type=request.entity_type,
                entity_id=request.entity_id,
                context=request.context_dict(),
                timestamp=timestamp,
            ),
            retry_attempts=0,
            created_at=timestamp,
        )

    def with_retry_attempt(self) -> "PayloadSnapshot":
        return replace(self, retry_attempts=self.retry_attempts + 1)

    def to_recipient(self, *, default_user_id: str) -> ResolvedRecipient:
        return self.recipient.to_recipient(default_user_id=default_user_id)

    def to_request(
        self, *, event_type: str, channel: str, default_entity_id: str
    ) -> NotificationRequest:
        """Rebuild a single-channel request for the record's channel."""

        return NotificationRequest(
            event_type=event_type,
            entity_type=self.event.entity_type or DEFAULT_ENTITY_TYPE,
            entity_id=self.event.entity_id or default_entity_id,
            channels=(channel,),
            recipient_types=(RecipientStrategy.MANUAL.value,),
            context=dict(self.event.context or {}),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "recipient": {
                "user_id": self.recipient.user_id,
                "email": self.recipient.email,
                "name": self.recipient.name,
                "recipient_type": self.recipient.recipient_type,
                "phone": self.recipient.phone,
                "metadata": self.recipient.metadata,
            },
            "event": {
                "type": self.event.type,
                "entity_type": self.event.entity_type,
                "entity_id": self.event.entity_id,
                "context": self.event.context,
                "timestamp": self.event.timestamp,
            },
            "retry_attempts": self.retry_attempts,
            "created_at": self.created_at,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)

    @classmethod
    def from_json(cls, raw: str | None) -> "PayloadSnapshot":
        """Parse a stored snapshot.

        Raises :class:`MalformedSnapshotError` when the document is empty,
        unparsable or lacks the ``recipient`` block.
        """

        payload = _load_document(raw)
        payload = _normalize_keys(payload)

        recipient_data = payload.get("recipient")
        if not isinstance(recipient_data, Mapping):
            raise MalformedSnapshotError(
                "Invalid notification payload: missing recipient data"
            )

        event_data = payload.get("event")
        if not isinstance(event_data, Mapping):
            event_data = {}

        metadata = recipient_data.get("metadata")
        context = event_data.get("context")
        return cls(
            recipient=RecipientSnapshot(
                user_id=_optional_str(recipient_data.get("user_id")),
                email=_optional_str(recipient_data.get("email")),
                recipient_type=_optional_str(recipient_data.get("recipient_type")),
                phone=_optional_str(recipient_data.get("phone")),
                name=_optional_str(recipient_data.get("name")),
                metadata=dict(metadata) if isinstance(metadata, Mapping) else {},
            ),
            event=EventSnapshot(
                type=_optional_str(event_data.get("type")),
                entity_type=_optional_str(event_data.get("entity_type")),
                entity_id=_optional_str(event_data.get("entity_id")),
                context=dict(context) if isinstance(context, Mapping) else {},
                timestamp=_optional_str(event_data.get("timestamp")),
            ),
            retry_attempts=_as_int(payload.get("retry_attempts")),
            created_at=_optional_str(payload.get("created_at")),
            version=_as_int(payload.get("version"), default=SNAPSHOT_VERSION),
        )


def _load_document(raw: str | None) -> dict[str, Any]:
    if raw is None or not raw.strip():
        raise MalformedSnapshotError("JSON payload is null or empty")
    try:
        document = json.loads(raw)
        # A snapshot serialized twice decodes to a string holding the real document.
        if isinstance(document, str):
            document = json.loads(document)
    except (TypeError, ValueError) as exc:
        raise MalformedSnapshotError(
            f"Failed to parse notification payload: {exc}"
        ) from exc
    if not isinstance(document, dict):
        raise MalformedSnapshotError("Notification payload is not a JSON object")
    return document


def _normalize_keys(data: dict[str, Any]) -> dict[str, Any]:
    normalized: dict[str, Any] = {}
    for key, value in data.items():
        target = _LEGACY_KEYS.get(key, key)
        if isinstance(value, dict) and key in ("recipient", "event"):
            value = {_LEGACY_KEYS.get(k, k): v for k, v in value.items()}
        normalized.setdefault(target, value)
    return normalized


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _as_int(value: Any, *, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


__all__ = [
    "DEFAULT_ENTITY_TYPE",
    "EventSnapshot",
    "PayloadSnapshot",
    "RecipientSnapshot",
    "SNAPSHOT_VERSION",
]
