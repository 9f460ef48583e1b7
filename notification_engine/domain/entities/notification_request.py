"""Domain entity representing an inbound notification event."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Sequence


@dataclass(frozen=True)
class NotificationRequest:
    """Event to process: what happened, to which entity, for whom and how."""

    event_type: str
    entity_type: str
    entity_id: str
    channels: tuple[str, ...]
    recipient_types: tuple[str, ...]
    context: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.event_type or not self.event_type.strip():
            raise ValueError("Event type is required")
        object.__setattr__(self, "channels", tuple(self.channels or ()))
        object.__setattr__(self, "recipient_types", tuple(self.recipient_types or ()))
        if not self.channels:
            raise ValueError("At least one channel is required")
        if not self.recipient_types:
            raise ValueError("At least one recipient type is required")
        object.__setattr__(self, "context", MappingProxyType(dict(self.context or {})))

    @classmethod
    def create(
        cls,
        *,
        event_type: str,
        entity_type: str,
        entity_id: str,
        channels: Sequence[str],
        recipient_types: Sequence[str],
        context: Mapping[str, Any] | None = None,
    ) -> "NotificationRequest":
        """Build a request from keyword arguments, copying ``context``."""

        return cls(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            channels=tuple(channels),
            recipient_types=tuple(recipient_types),
            context=dict(context or {}),
        )

    def context_dict(self) -> dict[str, Any]:
        """Return a mutable copy of the request context."""

        return dict(self.context)

    def identity_key(self) -> str:
        """Return a stable key identifying this request's content."""

        return json.dumps(
            {
                "event_type": self.event_type,
                "entity_type": self.entity_type,
                "entity_id": self.entity_id,
                "channels": list(self.channels),
                "recipient_types": list(self.recipient_types),
                "context": self.context_dict(),
            },
            sort_keys=True,
            default=str,
        )


__all__ = ["NotificationRequest"]
