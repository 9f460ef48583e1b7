"""Read and delete operations on delivery records."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from notification_engine.domain.entities import DeliveryRecord
from notification_engine.domain.exceptions import NotFoundError
from notification_engine.infrastructure.repositories import DeliveryRecordRepository

logger = logging.getLogger(__name__)

MAX_USER_NOTIFICATIONS = 100


@dataclass(frozen=True)
class NotificationFilters:
    status: str | None = None
    channel: str | None = None
    event_type: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None


def get_notification(session: Session, record_id: int) -> DeliveryRecord:
    """Return delivery record ``record_id`` or raise :class:`NotFoundError`."""

    record = DeliveryRecordRepository(session).get(record_id)
    if record is None:
        raise NotFoundError(f"Notification not found: {record_id}")
    return record


def list_notifications(
    session: Session,
    *,
    filters: NotificationFilters | None = None,
    page: int = 0,
    size: int = 20,
) -> tuple[Sequence[DeliveryRecord], int]:
    """Return one page of records matching ``filters`` and the total match count."""

    if page < 0:
        raise ValueError("Page must be zero or greater")
    if size < 1 or size > MAX_USER_NOTIFICATIONS:
        raise ValueError(f"Size must be between 1 and {MAX_USER_NOTIFICATIONS}")

    filters = filters or NotificationFilters()
    repository = DeliveryRecordRepository(session)
    criteria = {
        "status": filters.status,
        "channel": filters.channel,
        "event_type": filters.event_type,
        "start_date": filters.start_date,
        "end_date": filters.end_date,
    }
    records = repository.list(**criteria, skip=page * size, limit=size)
    return records, repository.count(**criteria)


def get_user_notifications(
    session: Session,
    user_id: str,
    *,
    status: str | None = None,
    limit: int = 20,
) -> Sequence[DeliveryRecord]:
    """Return the latest records addressed to ``user_id``."""

    if limit < 1 or limit > MAX_USER_NOTIFICATIONS:
        raise ValueError(f"Limit must be between 1 and {MAX_USER_NOTIFICATIONS}")
    return DeliveryRecordRepository(session).list_for_user(
        user_id, status=status, limit=limit
    )


def delete_notification(session: Session, record_id: int) -> None:
    if not DeliveryRecordRepository(session).delete(record_id):
        raise NotFoundError(f"Notification not found: {record_id}")
    logger.info("Notification %s deleted", record_id)


__all__ = [
    "MAX_USER_NOTIFICATIONS",
    "NotificationFilters",
    "delete_notification",
    "get_notification",
    "get_user_notifications",
    "list_notifications",
]
