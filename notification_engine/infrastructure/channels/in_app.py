"""In-app channel pushing events to connected websocket clients."""

from __future__ import annotations

import logging

from notification_engine.domain.entities import Channel, NotificationRequest, ResolvedRecipient
from notification_engine.infrastructure.notifications import (
    NotificationPublisher,
    notification_publisher,
    serialize_in_app_event,
)

logger = logging.getLogger(__name__)


class InAppSender:
    channel = Channel.IN_APP.value

    def __init__(self, publisher: NotificationPublisher = notification_publisher) -> None:
        self.publisher = publisher

    def send(self, recipient: ResolvedRecipient, request: NotificationRequest) -> None:
        logger.info(
            "In-app notification for %s on event %s", recipient.user_id, request.event_type
        )
        message = serialize_in_app_event(recipient.user_id, request)
        if self.publisher.publish(recipient.user_id, message):
            logger.debug("Realtime event pushed to %s", recipient.user_id)


__all__ = ["InAppSender"]
