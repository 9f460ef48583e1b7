"""Domain entity representing one delivery attempt."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from notification_engine.domain.exceptions import InvalidStateError


class DeliveryStatus(str, Enum):
    """Lifecycle states of a :class:`DeliveryRecord`."""

    PENDING = "pending"
    SENT = "sent"
    ERROR = "error"
    RETRYING = "retrying"


TERMINAL_STATUSES: tuple[DeliveryStatus, ...] = (DeliveryStatus.SENT, DeliveryStatus.ERROR)

_ALLOWED_TRANSITIONS: dict[DeliveryStatus, frozenset[DeliveryStatus]] = {
    DeliveryStatus.PENDING: frozenset({DeliveryStatus.SENT, DeliveryStatus.ERROR}),
    DeliveryStatus.ERROR: frozenset({DeliveryStatus.RETRYING}),
    DeliveryStatus.RETRYING: frozenset({DeliveryStatus.SENT, DeliveryStatus.ERROR}),
    DeliveryStatus.SENT: frozenset(),
}


@dataclass
class DeliveryRecord:
    """Persisted attempt to notify one recipient over one channel."""

    id: int | None
    user_id: str
    event_type: str
    channel: str
    status: DeliveryStatus
    payload_snapshot: str | None
    error_message: str | None = None
    created_at: datetime | None = None
    sent_at: datetime | None = None

    def mark_sent(self, when: datetime) -> None:
        self._transition(DeliveryStatus.SENT)
        self.sent_at = when
        self.error_message = None

    def mark_error(self, reason: str | None) -> None:
        self._transition(DeliveryStatus.ERROR)
        self.error_message = reason or "Unknown error"
        self.sent_at = None

    def mark_retrying(self) -> None:
        if self.status is not DeliveryStatus.ERROR:
            msg = f"Notification {self.id} is not in error state: {self.status.value}"
            raise InvalidStateError(msg)
        self._transition(DeliveryStatus.RETRYING)
        self.error_message = None

    def _transition(self, target: DeliveryStatus) -> None:
        if target not in _ALLOWED_TRANSITIONS[self.status]:
            msg = (
                f"Notification {self.id} cannot move from "
                f"{self.status.value} to {target.value}"
            )
            raise InvalidStateError(msg)
        self.status = target


__all__ = ["DeliveryRecord", "DeliveryStatus", "TERMINAL_STATUSES"]
