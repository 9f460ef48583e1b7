"""SMS channel placeholder that only records the delivery intent."""

from __future__ import annotations

import logging

from notification_engine.domain.entities import Channel, NotificationRequest, ResolvedRecipient
from notification_engine.utils import mask_phone

logger = logging.getLogger(__name__)


class SmsSender:
    channel = Channel.SMS.value

    def send(self, recipient: ResolvedRecipient, request: NotificationRequest) -> None:
        logger.info(
            "SMS notification for %s (%s) on event %s",
            recipient.user_id,
            mask_phone(recipient.phone),
            request.event_type,
        )


__all__ = ["SmsSender"]
