"""Protocol implemented by every delivery channel."""

from __future__ import annotations

from typing import Protocol

from notification_engine.domain.entities import NotificationRequest, ResolvedRecipient


class ChannelSender(Protocol):
    """Deliver one notification to one recipient over a single medium.

    ``send`` returns on success and raises on any delivery failure.
    """

    channel: str

    def send(self, recipient: ResolvedRecipient, request: NotificationRequest) -> None: ...


__all__ = ["ChannelSender"]
