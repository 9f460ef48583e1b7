"""Housekeeping of old delivery records."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from notification_engine.domain.entities import TERMINAL_STATUSES
from notification_engine.infrastructure.repositories import DeliveryRecordRepository
from notification_engine.utils import days_ago_in_app_timezone

logger = logging.getLogger(__name__)


def cleanup_old_notifications(session: Session, *, days_to_keep: int = 30) -> int:
    """Delete sent and failed records older than ``days_to_keep`` days.

    Pending and retrying records are never removed. Returns the number of
    deleted records.
    """

    if days_to_keep < 1:
        raise ValueError("days_to_keep must be at least 1")

    cutoff = days_ago_in_app_timezone(days_to_keep)
    deleted = DeliveryRecordRepository(session).delete_older_than(
        cutoff, statuses=TERMINAL_STATUSES
    )
    logger.info(
        "Cleaned up %s old notifications older than %s days", deleted, days_to_keep
    )
    return deleted


__all__ = ["cleanup_old_notifications"]
