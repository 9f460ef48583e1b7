"""Replay a failed delivery from its stored snapshot."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import replace

from sqlalchemy.orm import Session

from notification_engine.domain.entities import DeliveryRecord, DeliveryStatus, PayloadSnapshot
from notification_engine.domain.exceptions import (
    InvalidStateError,
    MalformedSnapshotError,
    NotFoundError,
)
from notification_engine.infrastructure.channels import ChannelSender
from notification_engine.infrastructure.repositories import DeliveryRecordRepository

from .dispatch import deliver_record

logger = logging.getLogger(__name__)

RETRY_ERROR_PREFIX = "Retry failed: "


def retry_notification(
    session: Session,
    record_id: int,
    *,
    senders: Mapping[str, ChannelSender],
) -> DeliveryRecord:
    """Resend record ``record_id`` on its own channel and update it in place.

    Raises :class:`NotFoundError` for an unknown id, :class:`InvalidStateError`
    unless the record is in ``error`` and :class:`MalformedSnapshotError` when
    its snapshot cannot be decoded. A failed resend is recorded on the record
    and returned rather than raised.
    """

    repository = DeliveryRecordRepository(session)
    record = repository.get(record_id)
    if record is None:
        raise NotFoundError(f"Notification not found: {record_id}")

    record.mark_retrying()
    claimed = repository.transition_status(
        record.id, expected=DeliveryStatus.ERROR, target=DeliveryStatus.RETRYING
    )
    if not claimed:
        logger.warning("Notification %s changed state before its retry started", record.id)
        raise InvalidStateError(f"Notification {record.id} is not in error state")
    logger.info("Retrying notification %s via %s", record.id, record.channel)

    try:
        snapshot = PayloadSnapshot.from_json(record.payload_snapshot)
    except MalformedSnapshotError as exc:
        record.mark_error(f"{RETRY_ERROR_PREFIX}{exc.message}")
        repository.update(record)
        logger.error("Cannot retry notification %s: %s", record.id, exc.message)
        raise

    recipient = snapshot.to_recipient(default_user_id=record.user_id)
    request = snapshot.to_request(
        event_type=record.event_type,
        channel=record.channel,
        default_entity_id=record.user_id,
    )
    record = replace(record, payload_snapshot=snapshot.with_retry_attempt().to_json())

    deliver_record(record, recipient, request, senders, error_prefix=RETRY_ERROR_PREFIX)
    updated = repository.update(record)
    logger.info("Retry of notification %s finished with status %s", updated.id, updated.status.value)
    return updated


__all__ = ["RETRY_ERROR_PREFIX", "retry_notification"]
