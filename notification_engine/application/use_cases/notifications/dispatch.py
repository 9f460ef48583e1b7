"""Orchestrate resolution and per-channel delivery of notification events."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from notification_engine.domain.entities import (
    Channel,
    DeliveryRecord,
    DeliveryStatus,
    NotificationRequest,
    PayloadSnapshot,
    RecipientStrategy,
    ResolvedRecipient,
)
from notification_engine.domain.exceptions import NotificationSendError, ProcessingError
from notification_engine.infrastructure.channels import ChannelSender
from notification_engine.infrastructure.repositories import DeliveryRecordRepository
from notification_engine.utils import now_in_app_timezone

logger = logging.getLogger(__name__)

SIMPLE_ENTITY_TYPE = "user"


class RecipientSource(Protocol):
    def resolve(self, request: NotificationRequest) -> list[ResolvedRecipient]: ...


@dataclass(frozen=True)
class SimpleNotification:
    """Ad-hoc notification addressed to a single user over one channel."""

    event_type: str
    recipient_id: str
    channel: str
    context: Mapping[str, Any] = field(default_factory=dict)

    def to_request(self) -> NotificationRequest:
        return NotificationRequest.create(
            event_type=self.event_type,
            entity_type=SIMPLE_ENTITY_TYPE,
            entity_id=self.recipient_id,
            channels=[self.channel],
            recipient_types=[RecipientStrategy.MANUAL.value],
            context=self.context,
        )


@dataclass
class BatchItemResult:
    event_type: str
    recipient_id: str
    status: str
    records: list[DeliveryRecord] = field(default_factory=list)
    error: str | None = None


@dataclass
class BatchResult:
    total: int
    success: int
    errors: int
    results: list[BatchItemResult]


def send_for_channel(
    recipient: ResolvedRecipient,
    request: NotificationRequest,
    channel: str,
    senders: Mapping[str, ChannelSender],
) -> None:
    """Deliver ``request`` to ``recipient`` over ``channel``.

    Raises :class:`NotificationSendError` describing why delivery failed.
    """

    parsed = Channel.parse(channel)
    sender = senders.get(parsed.value) if parsed is not None else None
    if sender is None:
        raise NotificationSendError(
            f"Unsupported channel: {channel}", channel=channel, recipient_id=recipient.user_id
        )

    if parsed is Channel.WHATSAPP and not recipient.has_phone():
        raise NotificationSendError(
            "Recipient has no phone number for WhatsApp",
            channel=channel,
            recipient_id=recipient.user_id,
        )

    try:
        sender.send(recipient, request)
    except Exception as exc:
        raise NotificationSendError(
            f"Failed to send via {parsed.value}: {exc}",
            channel=channel,
            recipient_id=recipient.user_id,
        ) from exc


def deliver_record(
    record: DeliveryRecord,
    recipient: ResolvedRecipient,
    request: NotificationRequest,
    senders: Mapping[str, ChannelSender],
    *,
    error_prefix: str = "",
) -> DeliveryRecord:
    """Send over the record's channel and move the record to ``sent`` or ``error``."""

    try:
        send_for_channel(recipient, request, record.channel, senders)
    except NotificationSendError as exc:
        logger.warning(
            "Failed to send %s notification to %s: %s",
            record.channel,
            recipient.user_id,
            exc.message,
        )
        record.mark_error(f"{error_prefix}{exc.message}")
    else:
        record.mark_sent(now_in_app_timezone())
        logger.info("Notification sent via %s to %s", record.channel, recipient.user_id)
    return record


def process_workflow_notification(
    session: Session,
    request: NotificationRequest,
    *,
    resolver: RecipientSource,
    senders: Mapping[str, ChannelSender],
) -> list[DeliveryRecord]:
    """Deliver ``request`` to every resolved recipient on every channel.

    One record is persisted per (recipient, channel) pair, whatever the
    outcome of the send. Only a failure of recipient resolution itself
    aborts processing with :class:`ProcessingError`.
    """

    logger.info(
        "Processing notification for event: %s, entity: %s",
        request.event_type,
        request.entity_id,
    )
    try:
        recipients = resolver.resolve(request)
    except Exception as exc:
        logger.error("Error resolving recipients for %s: %s", request.event_type, exc)
        raise ProcessingError(f"Failed to process notification: {exc}") from exc

    if not recipients:
        logger.warning("No recipients found for event: %s", request.event_type)
        return []

    repository = DeliveryRecordRepository(session)
    records: list[DeliveryRecord] = []
    for recipient in recipients:
        if not recipient.is_valid():
            logger.warning("Skipping invalid recipient: %s", recipient)
            continue
        for channel in request.channels:
            record = _process_pair(repository, recipient, request, channel, senders)
            if record is not None:
                records.append(record)

    logger.info(
        "Processed %s deliveries for event %s", len(records), request.event_type
    )
    return records


def _process_pair(
    repository: DeliveryRecordRepository,
    recipient: ResolvedRecipient,
    request: NotificationRequest,
    channel: str,
    senders: Mapping[str, ChannelSender],
) -> DeliveryRecord | None:
    now = now_in_app_timezone()
    snapshot = PayloadSnapshot.capture(recipient, request, captured_at=now)
    record = DeliveryRecord(
        id=None,
        user_id=recipient.user_id,
        event_type=request.event_type,
        channel=channel,
        status=DeliveryStatus.PENDING,
        payload_snapshot=snapshot.to_json(),
        created_at=now,
    )
    deliver_record(record, recipient, request, senders)

    try:
        return repository.create(record)
    except SQLAlchemyError as exc:
        repository.session.rollback()
        logger.error(
            "Failed to persist %s notification for %s: %s", channel, recipient.user_id, exc
        )
        return None


def send_simple(
    session: Session,
    notification: SimpleNotification,
    *,
    resolver: RecipientSource,
    senders: Mapping[str, ChannelSender],
) -> list[DeliveryRecord]:
    """Process an ad-hoc notification to a single user."""

    logger.info(
        "Manual notification: %s to %s", notification.event_type, notification.recipient_id
    )
    return process_workflow_notification(
        session, notification.to_request(), resolver=resolver, senders=senders
    )


def send_batch(
    session: Session,
    notifications: Sequence[SimpleNotification],
    *,
    resolver: RecipientSource,
    senders: Mapping[str, ChannelSender],
) -> BatchResult:
    """Process each ad-hoc notification independently."""

    if not notifications:
        raise ValueError("Batch cannot be empty")

    results: list[BatchItemResult] = []
    for notification in notifications:
        try:
            records = send_simple(session, notification, resolver=resolver, senders=senders)
        except (ProcessingError, ValueError) as exc:
            logger.warning("Error processing batch item: %s", exc)
            results.append(
                BatchItemResult(
                    event_type=notification.event_type,
                    recipient_id=notification.recipient_id,
                    status="error",
                    error=str(exc),
                )
            )
            continue
        results.append(
            BatchItemResult(
                event_type=notification.event_type,
                recipient_id=notification.recipient_id,
                status="success",
                records=records,
            )
        )

    success = sum(1 for item in results if item.status == "success")
    return BatchResult(
        total=len(notifications),
        success=success,
        errors=len(results) - success,
        results=results,
    )


__all__ = [
    "BatchItemResult",
    "BatchResult",
    "RecipientSource",
    "SimpleNotification",
    "deliver_record",
    "process_workflow_notification",
    "send_batch",
    "send_for_channel",
    "send_simple",
]
