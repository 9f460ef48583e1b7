"""Exceptions raised by the notification engine."""

from __future__ import annotations


class NotificationError(Exception):
    """Base error for notification operations."""

    default_code = "NOTIFICATION_ERROR"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code


class ProcessingError(NotificationError):
    """Raised when a notification request cannot be processed at all."""

    default_code = "PROCESSING_ERROR"


class RecipientResolutionError(NotificationError):
    """Raised when recipient resolution is unusable as a whole."""

    default_code = "RECIPIENT_RESOLUTION_ERROR"


class NotificationSendError(NotificationError):
    """Raised when a channel fails to deliver to one recipient."""

    default_code = "SEND_ERROR"

    def __init__(
        self,
        message: str,
        *,
        channel: str | None = None,
        recipient_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.channel = channel
        self.recipient_id = recipient_id


class NotFoundError(NotificationError):
    """Raised when a delivery record does not exist."""

    default_code = "NOT_FOUND"


class InvalidStateError(NotificationError):
    """Raised when a delivery record is not in a state allowing the operation."""

    default_code = "INVALID_STATE"


class MalformedSnapshotError(NotificationError):
    """Raised when a payload snapshot cannot be turned back into a request."""

    default_code = "MALFORMED_SNAPSHOT"


__all__ = [
    "InvalidStateError",
    "MalformedSnapshotError",
    "NotFoundError",
    "NotificationError",
    "NotificationSendError",
    "ProcessingError",
    "RecipientResolutionError",
]
