"""Aggregated delivery statistics and service health."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import asdict
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from notification_engine.domain.entities import ALL_CHANNELS, DeliveryStatus
from notification_engine.infrastructure.channels.whatsapp_web import WhatsAppWebHealth
from notification_engine.infrastructure.repositories import DeliveryRecordRepository
from notification_engine.utils import days_ago_in_app_timezone, now_in_app_timezone

logger = logging.getLogger(__name__)

TOP_EVENT_TYPES = 5


def _success_rate(sent: int, total: int) -> str:
    if total <= 0:
        return "0%"
    return f"{sent / total * 100:.1f}%"


def get_statistics(session: Session, *, days: int = 7) -> dict[str, Any]:
    """Summarize the records created during the last ``days`` days."""

    if days < 1:
        raise ValueError("Days must be at least 1")

    since = days_ago_in_app_timezone(days)
    repository = DeliveryRecordRepository(session)
    by_status = repository.count_by_status(since=since)
    total = sum(by_status.values())
    sent = by_status.get(DeliveryStatus.SENT.value, 0)

    by_channel = {
        channel: count
        for channel, count in repository.count_by_channel(since=since).items()
        if channel in ALL_CHANNELS and count > 0
    }
    by_event_type = repository.count_by_event_type(since=since, limit=TOP_EVENT_TYPES)
    by_day = Counter(
        created_at.strftime("%Y-%m-%d")
        for created_at in repository.list_creation_dates(since=since)
        if created_at is not None
    )

    return {
        "period_days": days,
        "since": since.isoformat(),
        "total": total,
        "sent": sent,
        "error": by_status.get(DeliveryStatus.ERROR.value, 0),
        "pending": by_status.get(DeliveryStatus.PENDING.value, 0),
        "retrying": by_status.get(DeliveryStatus.RETRYING.value, 0),
        "success_rate": _success_rate(sent, total),
        "by_channel": by_channel,
        "by_event_type": by_event_type,
        "by_day": dict(sorted(by_day.items())),
    }


def get_health(
    session: Session, *, whatsapp: WhatsAppWebHealth | None = None
) -> dict[str, Any]:
    """Report whether the record store is reachable, with per-status totals.

    Storage failures are reported as ``DOWN`` instead of being raised. The
    WhatsApp Web session state is informational and never changes ``status``.
    """

    timestamp = now_in_app_timezone().isoformat()
    try:
        by_status = DeliveryRecordRepository(session).count_by_status()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error("Health check failed: %s", exc)
        health: dict[str, Any] = {
            "status": "DOWN",
            "timestamp": timestamp,
            "database": "disconnected",
            "error": str(exc),
        }
    else:
        health = {
            "status": "UP",
            "timestamp": timestamp,
            "database": "connected",
            "total_notifications": sum(by_status.values()),
            "pending_notifications": by_status.get(DeliveryStatus.PENDING.value, 0),
            "error_notifications": by_status.get(DeliveryStatus.ERROR.value, 0),
            "sent_notifications": by_status.get(DeliveryStatus.SENT.value, 0),
            "retrying_notifications": by_status.get(DeliveryStatus.RETRYING.value, 0),
        }

    if whatsapp is not None:
        health["whatsapp"] = asdict(whatsapp)
    return health


__all__ = ["get_health", "get_statistics"]
